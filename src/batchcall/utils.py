from __future__ import annotations

import json
import re
from collections.abc import Sequence
from typing import Any, TypeAlias, TypeVar

JSONValue: TypeAlias = (
    str | int | float | bool | None | dict[str, "JSONValue"] | list["JSONValue"]
)

T = TypeVar("T")

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    """
    Split a sequence into consecutive groups of ``size`` items.

    The last group may be smaller. Order is preserved.

    Args:
        items (Sequence[T]): The items to split
        size (int): Group size, must be >= 1

    Returns:
        list[list[T]]: The groups, in input order

    Example:
        >>> partition(["a", "b", "c", "d", "e"], 2)
        [['a', 'b'], ['c', 'd'], ['e']]
    """
    if size < 1:
        raise ValueError(f"Group size must be >= 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def extract_json(text: str) -> JSONValue:
    """
    Parse a JSON value from model output text.

    Accepts plain JSON or JSON wrapped in a markdown code fence. Falls back
    to the outermost ``{...}`` span when the text has prose around it.

    Args:
        text (str): Raw text returned by a model

    Returns:
        JSONValue: The parsed value

    Raises:
        ValueError: If no JSON value can be parsed
    """
    candidate = text.strip()
    fenced = _FENCE_RE.match(candidate)
    if fenced:
        candidate = fenced.group(1)
    try:
        value: JSONValue = json.loads(candidate)
        return value
    except json.JSONDecodeError:
        pass

    start = candidate.find("{")
    end = candidate.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("No JSON object found in response text")
    try:
        value = json.loads(candidate[start : end + 1])
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in response text: {e}") from e
    return value


def validate_jsonl_file(filepath: str, name: str = "File") -> None:
    """
    Check that a path points to a JSONL file.

    Args:
        filepath (str): The path to check
        name (str): Label used in the error message

    Raises:
        ValueError: If the path does not end with .jsonl
    """
    if not filepath.endswith(".jsonl"):
        raise ValueError(f"{name} must be a .jsonl file, got: {filepath}")


def append_to_jsonl(data: dict[str, Any] | list[Any], file: str) -> None:
    """
    Append a json payload to the end of a jsonl file.

    Args:
        data (dict[str, Any] | list[Any]): the data to append to the file
        file (str): the file to append the data to

    Returns:
        None
    """
    json_string = json.dumps(data)
    with open(file, mode="a", encoding="utf-8") as f:
        f.write(json_string + "\n")
