"""
firepush/utils/jsonl.py

Parses newline-delimited JSON into documents. Each non-blank line is decoded
on its own; lines that are not valid JSON, or not JSON objects, are reported
by line number instead of being passed on to the uploader.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

import aiofiles
from pydantic import BaseModel, Field

from firepush.models.document import Document


class JsonlParseResult(BaseModel):
    """
    Outcome of parsing a JSONL payload.

    Attributes:
        documents (List[Dict[str, Any]]): Lines that decoded to JSON objects, in order.
        errors (List[str]): One message per rejected line, e.g. "Line 3: Expected JSON object".
    """

    documents: List[Dict[str, Any]] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    line_count: int = 0


def parse_jsonl_text(text: str) -> JsonlParseResult:
    """Split `text` into lines and decode each non-blank one."""
    # only "\n" separates records; JSON strings may hold U+2028, U+2029 and U+0085
    raw_lines = (line.rstrip("\r") for line in text.strip().split("\n"))
    lines = [line for line in raw_lines if line.strip()]
    result = JsonlParseResult(line_count=len(lines))
    for number, line in enumerate(lines, start=1):
        try:
            doc = json.loads(line)
        except json.JSONDecodeError as exc:
            result.errors.append(f"Line {number}: Invalid JSON - {exc}")
            continue
        if isinstance(doc, dict):
            result.documents.append(doc)
        else:
            result.errors.append(f"Line {number}: Expected JSON object")
    return result


def require_documents(result: JsonlParseResult) -> List[Document]:
    """
    Return the parsed documents only if the whole payload was clean.

    Raises:
        ValueError: If the payload was empty, had any bad line, or held no documents.
    """
    if result.line_count == 0:
        raise ValueError("Empty JSONL file")
    if result.errors:
        raise ValueError("JSONL parsing errors:\n" + "\n".join(result.errors))
    if not result.documents:
        raise ValueError("No valid documents found in JSONL file")
    return result.documents


async def load_jsonl(path: str) -> JsonlParseResult:
    """Read a JSONL file asynchronously and parse it."""
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        text = await f.read()
    return parse_jsonl_text(text)
