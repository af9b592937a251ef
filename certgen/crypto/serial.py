"""CA serial file (rootCA.srl): hex serial of the last certificate issued."""

from pathlib import Path

from cryptography import x509


class SerialFileError(Exception):
    """Raised when the serial file exists but does not hold a hex number."""
    pass


def format_serial(serial: int) -> str:
    # Upper-case hex in whole octets, as openssl writes it
    text = format(serial, "X")
    if len(text) % 2:
        text = "0" + text
    return text


def read_serial(path: Path) -> int:
    path = Path(path)
    text = path.read_text().strip()
    try:
        value = int(text, 16)
    except ValueError:
        raise SerialFileError(f"Serial file {path} is malformed: {text!r}")
    if value < 0:
        raise SerialFileError(f"Serial file {path} holds a negative serial: {text!r}")
    return value


def next_serial(path: Path) -> int:
    """Reserve the serial number for the next certificate.

    A missing file is created from a random starting serial. The stored
    value is incremented, written back and returned, so the file always
    holds the serial of the most recent certificate.

    Args:
        path: Path to the serial file

    Returns:
        Serial number to put in the new certificate

    Raises:
        SerialFileError if the existing file cannot be parsed
    """
    path = Path(path)
    if path.exists():
        current = read_serial(path)
    else:
        current = x509.random_serial_number()

    serial = current + 1
    path.write_text(format_serial(serial) + "\n")
    return serial
