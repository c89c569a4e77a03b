"""
MOSMIX KML forecast parser.

A single-station MOSMIX document holds one ordered list of time steps and one
``dwd:Forecast`` block per element:

```xml
<dwd:ForecastTimeSteps>
    <dwd:TimeStep>2021-01-09T04:00:00.000Z</dwd:TimeStep>
    ...
</dwd:ForecastTimeSteps>
<dwd:Forecast dwd:elementName="TTT">
    <dwd:value>     274.15     274.05 ...</dwd:value>
</dwd:Forecast>
```

The value text starts with a run of whitespace, so after collapsing whitespace
and splitting on single spaces the first token is a placeholder (usually empty)
and is discarded. The station id is not in the body; it is taken from the file
name (``MOSMIX_L_2021010903_10488.kml`` -> ``10488``).

Element series of unequal length are not cut to the shortest one. Each is
cut to the number of time steps, rows run up to the longest remaining series
and a row only carries the elements that have a value at its index. An absent
element block thus yields an empty series without emptying the others, and no
value is ever fabricated.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from bs4 import BeautifulSoup

from dwd_sync.exceptions import FormatError
from dwd_sync.models import ForecastRow

logger = logging.getLogger(__name__)

# MOSMIX element name -> row value key
ELEMENTS: Dict[str, str] = {
    "PPPP": "pppp",  # surface pressure, Pa
    "TTT": "ttt",  # temperature 2 m, K
    "FF": "ff",  # wind speed, m/s
    "DD": "dd",  # wind direction, deg
    "RRL1c": "rrl1c",  # precipitation last hour, kg/m2
    "R101": "r101",  # probability of precipitation > 0.1 mm/h, %
}

MISSING_VALUE = "-"


def station_id_from_filename(source_name: Union[str, Path]) -> str:
    """Return the part of the file stem after the last underscore."""
    return Path(source_name).stem.rsplit("_", 1)[-1]


def split_values(text: str) -> List[str]:
    """
    Tokenize a ``dwd:value`` blob.

    >>> split_values("   1.0   2.0  -")
    ['1.0', '2.0', '-']
    """
    tokens = re.sub(r"\s+", " ", text).split(" ")[1:]
    if tokens and tokens[-1] == "":
        tokens = tokens[:-1]
    return tokens


def _element_name(tag) -> Optional[str]:
    # lxml keeps the prefix in the attribute key ('dwd:elementName')
    for key, value in tag.attrs.items():
        if str(key).split(":")[-1] == "elementName":
            return value
    return None


def _to_value(token: str, element: str) -> Optional[float]:
    if token == MISSING_VALUE:
        return None
    try:
        return float(token)
    except ValueError as e:
        raise FormatError(f"Element {element} has non-numeric value {token!r}") from e


class ForecastXmlParser:
    """Decode MOSMIX KML documents into per-timestep forecast rows."""

    def __init__(self, elements: Optional[Dict[str, str]] = None):
        self.elements = elements or ELEMENTS

    def parse_series(
        self, document: Union[bytes, str]
    ) -> Tuple[List[str], Dict[str, List[Optional[float]]]]:
        """
        Extract the time steps and the raw per-element series.

        Returns:
            ``(timesteps, series)`` where ``series`` maps every known element
            key to its (possibly empty) list of values, truncated to the
            number of time steps

        Raises:
            FormatError: If the document has no time steps or a value is not
                numeric
        """
        soup = BeautifulSoup(document, "xml")

        timesteps = [ts.get_text(strip=True) for ts in soup.find_all("TimeStep")]
        if not timesteps:
            raise FormatError("Forecast document has no TimeStep markers")

        series: Dict[str, List[Optional[float]]] = {key: [] for key in self.elements.values()}
        for block in soup.find_all("Forecast"):
            element = _element_name(block)
            if element not in self.elements:
                continue
            value_tag = block.find("value")
            if value_tag is None:
                continue

            tokens = split_values(value_tag.get_text())
            if len(tokens) != len(timesteps):
                logger.debug(
                    f"Element {element}: {len(tokens)} values for {len(timesteps)} time steps"
                )
            series[self.elements[element]] = [
                _to_value(token, element) for token in tokens[: len(timesteps)]
            ]

        return timesteps, series

    def parse(
        self,
        document: Union[bytes, str],
        source_name: Union[str, Path],
    ) -> List[ForecastRow]:
        """
        Parse one forecast document.

        Args:
            document: KML content
            source_name: Name of the file the document came from

        Returns:
            One row per time step that has at least one value. A row only
            carries the elements that have a value at its index.
        """
        station_id = station_id_from_filename(source_name)
        timesteps, series = self.parse_series(document)

        longest = max((len(values) for values in series.values()), default=0)
        rows = []
        for i in range(min(len(timesteps), longest)):
            values = {key: vals[i] for key, vals in series.items() if i < len(vals)}
            rows.append(ForecastRow(station_id=station_id, timestep=timesteps[i], values=values))

        missing = [key for key, vals in series.items() if not vals]
        if missing:
            logger.warning(f"Forecast {station_id}: no values for {', '.join(missing)}")

        return rows

    def parse_file(self, path: Union[str, Path]) -> List[ForecastRow]:
        """Read a .kml file and parse it."""
        path = Path(path)
        return self.parse(path.read_bytes(), path.name)
