"""MFA device selection."""

import logging

import structlog

from .errors import NoDeviceError

logger = structlog.wrap_logger(logging.getLogger(__name__))


def select_device(devices, terminal):
    """Return the MFA device to authenticate with.

    A single device is used as is. With several devices the user is asked to
    pick one, and asked again until the answer is a number in range.
    """
    if not devices:
        # OneLogin should never ask for MFA without offering a device
        raise NoDeviceError("No MFA device returned by OneLogin")

    if len(devices) == 1:
        return devices[0]

    while True:
        for i, device in enumerate(devices):
            terminal.echo(f"{i + 1}. {device.label}")

        answer = terminal.read_line(
            f"Please choose an MFA device to authenticate with (1-{len(devices)}): "
        )
        try:
            selection = int(answer)
        except ValueError:
            terminal.echo(f"Invalid input '{answer}'")
            continue

        if 1 <= selection <= len(devices):
            device = devices[selection - 1]
            logger.debug("mfa device selected", device_type=device.device_type)
            return device

        terminal.echo("Invalid MFA device selected")
