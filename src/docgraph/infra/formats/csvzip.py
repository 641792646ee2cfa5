"""One CSV table per class, bundled in a zip archive."""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from collections.abc import Sequence
from pathlib import PurePosixPath
from typing import Any

from docgraph.core.types import ExportResult
from docgraph.infra.formats.base import FileFormat
from docgraph.items.coercion import to_string
from docgraph.items.item import Item
from docgraph.items.kinds import ItemKind
from docgraph.items.paths import is_reserved

logger = logging.getLogger(__name__)

INDEX_COLUMN = "index"


class CsvZip(FileFormat):
    name = "CsvZip"
    mime_type = "application/zip"
    extension = "zip"

    def format_data(self, model: Item, include_classes: Sequence[str] | None = None, **options: Any) -> ExportResult:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for export_class in self.export_classes(model, include_classes):
                rows = [(item.label, self.build_row(item)) for item in export_class.items]
                columns: list[str] = []
                for _label, row in rows:
                    columns.extend(key for key in row if key not in columns and key != INDEX_COLUMN)
                text = io.StringIO()
                writer = csv.writer(text, lineterminator="\n")
                writer.writerow([INDEX_COLUMN, *columns])
                for label, row in rows:
                    writer.writerow([label, *(to_string(row[key]) if key in row else "" for key in columns)])
                archive.writestr(f"{export_class.name}.csv", text.getvalue())
        return self.result(buffer.getvalue())

    def import_data(self, model: Item, text: str | bytes, **options: Any) -> None:
        self.require_document(model)
        if isinstance(text, str):
            raise self.fail("zip archives must be passed as bytes")
        try:
            archive = zipfile.ZipFile(io.BytesIO(text))
        except zipfile.BadZipFile as exc:
            raise self.fail(str(exc)) from exc

        contents = self.contents_of(model)
        with archive:
            for member in archive.namelist():
                path = PurePosixPath(member)
                if path.suffix.lower() != ".csv":
                    continue
                table = self.ensure_child_container(contents, path.stem)
                reader = csv.DictReader(io.StringIO(archive.read(member).decode("utf-8")))
                count = 0
                for row in reader:
                    label = row.pop(INDEX_COLUMN, None) or None
                    values = {key: value for key, value in row.items() if key and not is_reserved(key)}
                    item = table.create_new_item(values, label=label, kind=ItemKind.TAGGABLE)
                    item.add_class(path.stem)
                    count += 1
                logger.info("Imported %d rows from %s", count, member)
