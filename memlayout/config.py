"""Configuration options for codecs and the layout compiler."""

import json
import logging
from dataclasses import dataclass, fields
from enum import StrEnum, auto
from pathlib import Path

from dataclasses_json import DataClassJsonMixin

logger = logging.getLogger(__name__)


class OverlapPolicy(StrEnum):
    """What to do when a struct field lands on an offset that is already used."""

    REPLACE = auto()  # Later field silently replaces the earlier one
    REJECT = auto()  # Raise LayoutError


@dataclass
class Options(DataClassJsonMixin):
    """Options shared by the codec and the native block compiler."""

    byteorder: str = "little"
    text_encoding: str = "utf-8"
    wide_text_encoding: str = "utf-16-le"
    overlap_policy: OverlapPolicy = OverlapPolicy.REPLACE

    def __post_init__(self) -> None:
        if self.byteorder not in ("little", "big"):
            raise ValueError(f"byteorder must be 'little' or 'big', not {self.byteorder!r}")

    @property
    def struct_prefix(self) -> str:
        """Byte order prefix for the struct module."""
        return "<" if self.byteorder == "little" else ">"

    @classmethod
    def load(cls, path: Path | str) -> "Options":
        """Load options from a JSON file.

        A missing file yields the defaults. Unknown keys are ignored.
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"No options file at {path}, using defaults")
            return cls()

        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        valid_fields = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - valid_fields)
        if unknown:
            logger.warning(f"Ignoring unknown options in {path}: {', '.join(unknown)}")

        return cls.from_dict({k: v for k, v in data.items() if k in valid_fields})

    def save(self, path: Path | str) -> None:
        """Save options to a JSON file."""
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json(indent=2))


DEFAULT_OPTIONS = Options()
