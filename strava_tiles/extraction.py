"""Pull GPS points and track metadata out of GPX text.

Two extractors share the :class:`PointExtractor` interface:

* :class:`SubstringPointExtractor` scans the raw text for ``<trkpt`` elements
  and reads attributes by substring search. It never validates the document,
  tolerates truncated files and line breaks inside elements, and is the
  default used during ingestion. Attributes split across CDATA or using single
  quotes are not recognised.
* :class:`XmlPointExtractor` parses the document with ``defusedxml`` and fails
  the whole file when it is not well-formed.
"""

from __future__ import annotations

import logging
import math
from pathlib import PurePath
from typing import List, Optional, Protocol

from defusedxml import ElementTree as ET

from .errors import PointParseError
from .models import GeoPoint, TrackData
from .timeutils import parse_iso8601_or_zero

LOGGER = logging.getLogger(__name__)

# Span searched for a point-local <time> when the element is never closed.
_UNCLOSED_POINT_SPAN = 500


class PointExtractor(Protocol):
    def extract(self, content: str, filename: str) -> TrackData: ...


def _text_between(content: str, open_tag: str, close_tag: str) -> Optional[str]:
    start = content.find(open_tag)
    if start == -1:
        return None
    rest = content[start + len(open_tag) :]
    end = rest.find(close_tag)
    if end == -1:
        return None
    return rest[:end]


def _coordinate(raw: Optional[str], attr: str) -> float:
    if raw is None:
        raise PointParseError(f"Missing {attr} attribute")
    try:
        value = float(raw)
    except ValueError as exc:
        raise PointParseError(f"Malformed {attr} value {raw!r}") from exc
    # float() also accepts "nan", "inf" and overflowing literals.
    if not math.isfinite(value):
        raise PointParseError(f"Non-finite {attr} value {raw!r}")
    return value


def extract_attr(segment: str, attr: str) -> float:
    """Return the float value of ``attr="..."`` inside ``segment``.

    Raises:
        PointParseError: If the attribute is absent or not a finite number.
    """

    pattern = f'{attr}="'
    start = segment.find(pattern)
    if start == -1:
        raise PointParseError(f"Missing {attr} attribute")
    rest = segment[start + len(pattern) :]
    end = rest.find('"')
    if end == -1:
        raise PointParseError(f"Unterminated {attr} attribute")
    return _coordinate(rest[:end], attr)


def extract_metadata_time(content: str) -> Optional[int]:
    """Return the file-level time from the ``<metadata>`` block, if any."""

    start = content.find("<metadata>")
    end = content.find("</metadata>")
    if start == -1 or end == -1:
        return None
    raw = _text_between(content[start:end], "<time>", "</time>")
    if raw is None:
        return None
    return parse_iso8601_or_zero(raw)


def extract_track_name(content: str) -> Optional[str]:
    """Return the text of the first ``<name>`` element anywhere in the file."""

    return _text_between(content, "<name>", "</name>")


def activity_id_from_filename(filename: str) -> str:
    """Map ``activity_<id>.<ext>`` to ``<id>``; otherwise return the stem."""

    stem = PurePath(filename).stem
    if stem.startswith("activity_"):
        return stem[len("activity_") :]
    return stem


class SubstringPointExtractor:
    """Tolerant scanner reading ``<trkpt>`` elements by substring search."""

    def _point_span(self, content: str, start: int) -> str:
        segment = content[start:]
        end = segment.find("</trkpt>")
        if end == -1:
            end = min(len(segment), _UNCLOSED_POINT_SPAN)
        return segment[:end]

    def _parse_point(self, span: str, default_time: Optional[int]) -> GeoPoint:
        lat = extract_attr(span, "lat")
        lon = extract_attr(span, "lon")
        raw_time = _text_between(span, "<time>", "</time>")
        if raw_time is not None:
            timestamp = parse_iso8601_or_zero(raw_time)
        elif default_time is not None:
            timestamp = default_time
        else:
            timestamp = 0
        return GeoPoint(lat=lat, lon=lon, timestamp=timestamp)

    def extract(self, content: str, filename: str) -> TrackData:
        default_time = extract_metadata_time(content)
        points: List[GeoPoint] = []
        skipped = 0
        search_from = 0
        while True:
            pos = content.find("<trkpt", search_from)
            if pos == -1:
                break
            try:
                points.append(
                    self._parse_point(self._point_span(content, pos), default_time)
                )
            except PointParseError as exc:
                skipped += 1
                LOGGER.debug("Skipping track point at offset %d: %s", pos, exc)
            search_from = pos + len("<trkpt")
        if skipped:
            LOGGER.info(
                "Skipped %d malformed track points in %s", skipped, filename
            )
        name = extract_track_name(content) or filename
        return TrackData(name=name, points=points)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


class XmlPointExtractor:
    """Well-formedness checking extractor backed by ``defusedxml``."""

    def extract(self, content: str, filename: str) -> TrackData:
        try:
            root = ET.fromstring(content)
        except (ET.ParseError, ValueError) as exc:
            # defusedxml rejects entity and DTD tricks with ValueError subclasses.
            raise PointParseError(f"{filename} is not well-formed XML: {exc}") from exc

        name: Optional[str] = None
        default_time: Optional[int] = None
        for element in root.iter():
            tag = _local(element.tag)
            if name is None and tag == "name" and element.text:
                name = element.text
            if tag == "metadata":
                for child in element:
                    if _local(child.tag) == "time" and child.text:
                        default_time = parse_iso8601_or_zero(child.text)
                        break

        points: List[GeoPoint] = []
        for element in root.iter():
            if _local(element.tag) != "trkpt":
                continue
            try:
                lat = _coordinate(element.attrib.get("lat"), "lat")
                lon = _coordinate(element.attrib.get("lon"), "lon")
            except PointParseError as exc:
                LOGGER.debug("Skipping track point: %s", exc)
                continue
            timestamp = default_time if default_time is not None else 0
            for child in element:
                if _local(child.tag) == "time" and child.text:
                    timestamp = parse_iso8601_or_zero(child.text)
                    break
            points.append(GeoPoint(lat=lat, lon=lon, timestamp=timestamp))
        return TrackData(name=name or filename, points=points)


__all__ = [
    "PointExtractor",
    "SubstringPointExtractor",
    "XmlPointExtractor",
    "activity_id_from_filename",
    "extract_attr",
    "extract_metadata_time",
    "extract_track_name",
]
