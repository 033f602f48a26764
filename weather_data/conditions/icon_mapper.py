"""Icon URL -> condition key -> display icon and text.

api.weather.gov icon URLs look like::

    https://api.weather.gov/icons/land/day/skc
    https://api.weather.gov/icons/land/day/tsra,40/skc

The second form encodes two simultaneous conditions, optionally each with a
",<percent>" probability suffix. Only the first condition is used. The
resulting ``<period>/<condition>`` key indexes the packaged legacy mapping
table.
"""

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from urllib.parse import urlparse

from weather_data.models.errors import MappingMissError

logger = logging.getLogger(__name__)

NO_DATA_KEY = "no data"
DEFAULT_ICON = "nodata.svg"
DEFAULT_CONDITIONS = "No data"
LEGACY_MAPPING_PATH = Path(__file__).parent / "legacy_mapping.json"

_PROBABILITY_SUFFIX = re.compile(r",.*$")


@dataclass(frozen=True)
class ConditionMapping:
    icon: str
    text: str

    @property
    def basename(self) -> str:
        """Icon template name: the file name without its ``.svg`` suffix."""
        name = Path(self.icon).name
        return name[: -len(".svg")] if name.endswith(".svg") else name


NO_DATA = ConditionMapping(icon=DEFAULT_ICON, text=DEFAULT_CONDITIONS)


def derive_key(icon: str | None) -> str:
    """Reduce an icon reference to its ``<period>/<condition>`` key."""
    if not icon:
        return NO_DATA_KEY

    segments = urlparse(icon).path.split("/")

    # A leading "/" yields an empty first segment, so a single-condition
    # path has 5 segments and a dual-condition path has 6.
    if len(segments) == 6:
        segments = segments[-3:-1]
    else:
        segments = segments[-2:]

    return "/".join(_PROBABILITY_SUFFIX.sub("", s) for s in segments)


@lru_cache(maxsize=None)
def load_legacy_mapping(path: Path = LEGACY_MAPPING_PATH) -> Mapping[str, ConditionMapping]:
    """Load the mapping table once per process. The result is read-only."""
    with open(path) as f:
        raw = json.load(f)

    table: dict[str, ConditionMapping] = {}
    for key, entry in raw.items():
        try:
            table[key] = ConditionMapping(icon=entry["icon"], text=entry["text"])
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed legacy mapping entry {key!r} in {path}") from e

    logger.debug("Loaded %d condition mappings from %s", len(table), path)
    return MappingProxyType(table)


class IconConditionMapper:
    def __init__(
        self,
        table: Mapping[str, ConditionMapping] | None = None,
        strict: bool = False,
    ):
        self.table = load_legacy_mapping() if table is None else table
        self.strict = strict

    def resolve(self, key: str) -> ConditionMapping:
        """Look up a condition key.

        The "no data" key always resolves to the catch-all pair. Any other
        miss is a table defect: it raises in strict mode and degrades to the
        catch-all otherwise.
        """
        if key == NO_DATA_KEY:
            return NO_DATA
        mapping = self.table.get(key)
        if mapping is not None:
            return mapping
        if self.strict:
            raise MappingMissError(key)
        logger.error("No condition mapping for key %r, using catch-all", key)
        return NO_DATA

    def resolve_icon(self, icon: str | None) -> ConditionMapping:
        return self.resolve(derive_key(icon))
