# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import io
import zipfile
from typing import Iterable, List
from urllib.parse import quote

from fastapi.responses import Response, StreamingResponse

from extractdb.core.utils import dumps_pretty
from extractdb.services.mongo_service import CollectionDump

ZIP_FILENAME = "collections.zip"


def build_zip(dumps: Iterable[CollectionDump]) -> bytes:
    """One pretty-printed `<collection>.json` entry per collection."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        for dump in dumps:
            zf.writestr(f"{dump.name}.json", dumps_pretty(dump.documents))
    return buf.getvalue()


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{quote(filename)}"'}


def json_download(dump: CollectionDump) -> Response:
    return Response(
        content=dumps_pretty(dump.documents),
        media_type="application/json",
        headers=_attachment(f"{dump.name}.json"),
    )


def zip_download(dumps: List[CollectionDump]) -> StreamingResponse:
    """Assemble the archive in memory and stream it back, no temp files."""
    data = build_zip(dumps)
    return StreamingResponse(iter([data]), media_type="application/zip", headers=_attachment(ZIP_FILENAME))


def extraction_response(dumps: List[CollectionDump]) -> Response:
    if len(dumps) == 1:
        return json_download(dumps[0])
    return zip_download(dumps)
