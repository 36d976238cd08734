"""
Codec options.

Options affect how text payloads are converted and a few writer policies.
They never change the wire layout itself: byte order, record shapes and the
wire-type table are fixed by the format.

Options can be built in code or loaded from the `[gff]` table of a TOML file:

    [gff]
    encoding = "cp1252"
    resref_max_len = 32
    dedupe_labels = true
"""

import codecs
import dataclasses
import logging
import tomllib
from dataclasses import dataclass


logger = logging.getLogger(__name__)


@dataclass
class CodecOptions:
    """
    Properties:
        encoding: Codec for STRING, RESREF and LOCSTRING text (labels are always UTF-8)
        errors: Error handler passed to str.encode / bytes.decode
        resref_max_len: Capacity of a RESREF in bytes (16 for Aurora, 32 for NWN2)
        dedupe_labels: Share one label slot between fields with the same name
    """

    encoding: str = "utf-8"
    errors: str = "strict"
    resref_max_len: int = 16
    dedupe_labels: bool = False

    def __post_init__(self):
        try:
            codecs.lookup(self.encoding)
        except LookupError:
            raise ValueError(f"Unknown text encoding: {self.encoding!r}")
        try:
            codecs.lookup_error(self.errors)
        except LookupError:
            raise ValueError(f"Unknown encoding error handler: {self.errors!r}")
        # RESREF length prefix is a single byte
        if not 0 <= self.resref_max_len <= 255:
            raise ValueError(f"resref_max_len must be in 0..255, got {self.resref_max_len}")


DEFAULT_OPTIONS = CodecOptions()


def load_options(path) -> CodecOptions:
    """
    Load CodecOptions from the `[gff]` table of a TOML file.

    Unknown keys are logged and ignored. A missing table gives the defaults.
    """
    with open(path, "rb") as fh:
        data = tomllib.load(fh)

    table = data.get("gff", {})
    known = {f.name for f in dataclasses.fields(CodecOptions)}
    kwargs = {}
    for key, value in table.items():
        if key not in known:
            logger.warning("Ignoring unknown GFF option %r in %s", key, path)
            continue
        kwargs[key] = value
    return CodecOptions(**kwargs)
