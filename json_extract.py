import json
import re
from typing import Any


def strip_fences(text: str) -> str:
    text = re.sub(r"^```(?:json)?\s*", "", text.strip())
    return re.sub(r"\s*```$", "", text.strip())


def extract_json(text: str, expect: type = dict) -> Any:
    """
    Extract the first JSON value of type `expect` (dict or list) from LLM output.
    Raises ValueError if nothing usable is found.
    """
    if not text or not isinstance(text, str):
        raise ValueError("empty response")

    cleaned = strip_fences(text)
    try:
        value = json.loads(cleaned)
        if isinstance(value, expect):
            return value
    except json.JSONDecodeError:
        pass

    pattern = r"\[.*\]" if expect is list else r"\{.*\}"
    match = re.search(pattern, cleaned, re.DOTALL)
    if not match:
        raise ValueError(f"no JSON {expect.__name__} in response")

    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON: {e}") from e

    if not isinstance(value, expect):
        raise ValueError(f"expected JSON {expect.__name__}")
    return value
