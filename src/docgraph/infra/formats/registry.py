"""Registered file formats, looked up by name or extension."""

from __future__ import annotations

from docgraph.core.exceptions import UnknownFormatError
from docgraph.infra.formats.base import FileFormat
from docgraph.infra.formats.csvzip import CsvZip
from docgraph.infra.formats.d3json import D3Json
from docgraph.infra.formats.gexf import Gexf

FORMATS: dict[str, FileFormat] = {
    "d3json": D3Json(),
    "gexf": Gexf(),
    "csvzip": CsvZip(),
}

_ALIASES = {
    "d3": "d3json",
    "json": "d3json",
    "zip": "csvzip",
    "csv": "csvzip",
}


def get_format(name: str) -> FileFormat:
    key = name.lower()
    key = _ALIASES.get(key, key)
    if key not in FORMATS:
        raise UnknownFormatError(name, sorted(FORMATS))
    return FORMATS[key]
