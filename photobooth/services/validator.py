import base64
import binascii
import re
from dataclasses import dataclass
from typing import Iterable, Tuple

from photobooth.exceptions import InvalidFormat, MalformedEncoding, TooLarge
from photobooth.services.sniffer import ImageFormat, sniff_format

ENVELOPE_PATTERN = re.compile(r"^data:image/([a-zA-Z0-9]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class EncodedImage:
    declared_subtype: str
    data: str


class UploadValidator:
    """Parses data-URI envelopes and enforces the format allow-list and size limit.

    The declared subtype of the envelope is advisory only; the accepted format is
    always the one sniffed from the decoded bytes. Nothing here touches the disk.
    """

    def __init__(self, allowed_formats: Iterable[str], max_bytes: int):
        self.allowed_formats = frozenset(ImageFormat(name) for name in allowed_formats)
        self.max_bytes = max_bytes

    def parse_envelope(self, value: str) -> EncodedImage:
        if not isinstance(value, str):
            raise MalformedEncoding()
        matches = ENVELOPE_PATTERN.match(value)
        if matches is None:
            raise MalformedEncoding()
        return EncodedImage(declared_subtype=matches.group(1), data=matches.group(2))

    def decode(self, envelope: EncodedImage) -> bytes:
        try:
            buffer = base64.b64decode(envelope.data, validate=True)
        except (binascii.Error, ValueError):
            raise MalformedEncoding()
        if not buffer:
            raise MalformedEncoding()
        return buffer

    def check(self, buffer: bytes) -> ImageFormat:
        detected = sniff_format(buffer)
        if detected not in self.allowed_formats:
            raise InvalidFormat()
        if len(buffer) > self.max_bytes:
            raise TooLarge()
        return detected

    def validate(self, value: str) -> Tuple[bytes, ImageFormat]:
        buffer = self.decode(self.parse_envelope(value))
        return buffer, self.check(buffer)
