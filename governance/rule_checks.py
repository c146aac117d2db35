"""Machine-checkable predicates behind contract output rules.

Each check takes a RuleInput and returns a list of violation messages
(empty when the rule holds). Checks over JSON run on the sanitized data,
so masked placeholders count as acceptable values.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Tuple

from config import settings
from .json_extraction import JsonIsland

SNAKE_CASE = re.compile(r"[a-z0-9]+(?:_[a-z0-9]+)*")
PRICING_KEYS = ("input_per_1M", "output_per_1M")
ENV_REF_STRING = re.compile(r"^\s*env_ref[:./]", re.IGNORECASE)
HUMAN_SENTENCE = re.compile(r"[^\W\d_]{10,}")

SENSITIVE_FIELDS = [
    "api_key", "apikey",
    "client_secret", "client_id",
    "secret_key",
    "access_token", "refresh_token",
    "anon_key", "service_role",
    "private_key",
    "password", "senha",
]

REQUIRED_ENV_REFS = [
    "client_id_env_ref",
    "client_secret_env_ref",
    "api_key_env_ref",
    "anon_key_env_ref",
]

NUMERIC_FIELD_HINTS = ["count", "limit", "amount", "month", "minute", "executions", "calls"]
NUMERIC_FIELD_EXCLUSIONS = ["id", "uuid", "phone", "token", "key", "secret", "ref"]


@dataclass(frozen=True)
class RuleInput:
    """What a rule predicate gets to look at."""
    text: str
    island: Optional[JsonIsland]
    data: Any
    json_only: bool

    @property
    def has_json(self) -> bool:
        return self.island is not None and self.island.parsed


RuleCheck = Callable[[RuleInput], List[str]]


def _walk(value: Any, path: str = "") -> Iterator[Tuple[str, str, Any]]:
    """Yield (path, key, value) for every dict entry, depth first."""
    if isinstance(value, dict):
        for key, item in value.items():
            current = f"{path}.{key}" if path else str(key)
            yield current, str(key), item
            yield from _walk(item, current)
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from _walk(item, f"{path}[{index}]")


def _normalize_key(key: str) -> str:
    return key.lower().replace("-", "").replace("_", "")


def _is_masked(value: str) -> bool:
    return (value.startswith("[") and value.endswith("_MASKED]")) or "****" in value or "***@" in value


def check_snake_case_keys(inp: RuleInput) -> List[str]:
    errors = []
    for path, key, _ in _walk(inp.data):
        if key in PRICING_KEYS or SNAKE_CASE.fullmatch(key):
            continue
        errors.append(f'key "{path}" must be snake_case')
    return errors


def check_env_ref_strings(inp: RuleInput) -> List[str]:
    errors = []
    for path, key, value in _walk(inp.data):
        if isinstance(value, str) and ENV_REF_STRING.match(value):
            target = key if key.endswith("_env_ref") else f"{key}_env_ref"
            errors.append(f'field "{path}": use "{target}" with the variable name instead of an env_ref string')
    return errors


def check_sensitive_fields(inp: RuleInput) -> List[str]:
    errors = []
    sensitive = [_normalize_key(f) for f in SENSITIVE_FIELDS]
    for path, key, value in _walk(inp.data):
        if key.endswith("_env_ref") or not isinstance(value, str) or not value:
            continue
        if _is_masked(value) or ENV_REF_STRING.match(value):
            continue
        if any(s in _normalize_key(key) for s in sensitive):
            errors.append(f'field "{path}" must be "{key}_env_ref" holding an environment variable name')
    return errors


def check_required_env_refs(inp: RuleInput) -> List[str]:
    errors = []
    for path, key, value in _walk(inp.data):
        if key in REQUIRED_ENV_REFS and value in ("", None):
            errors.append(f'required field "{path}" must not be empty')
    return errors


def check_pricing_format(inp: RuleInput) -> List[str]:
    errors = []
    for path, key, value in _walk(inp.data):
        if key != "pricing" or not isinstance(value, dict):
            continue
        for wrong, right in (("inputper1m", "input_per_1M"), ("outputper1m", "output_per_1M")):
            if any(_normalize_key(k) == wrong and k != right for k in value):
                errors.append(f'{path}: use exactly "{right}"')
        for right in PRICING_KEYS:
            if right in value and (isinstance(value[right], bool) or not isinstance(value[right], (int, float))):
                errors.append(f"{path}.{right}: must be a number")
    return errors


def check_value_types(inp: RuleInput) -> List[str]:
    """Flag booleans and counters that were serialized as strings."""
    errors = []
    for path, key, value in _walk(inp.data):
        if not isinstance(value, str):
            continue
        key_lower = key.lower()
        if value.lower() in ("true", "false"):
            errors.append(f'field "{path}": "{value}" must be a boolean, not a string')
        elif (
            re.fullmatch(r"-?\d+(?:\.\d+)?", value)
            and any(h in key_lower for h in NUMERIC_FIELD_HINTS)
            and not any(e in key_lower for e in NUMERIC_FIELD_EXCLUSIONS)
        ):
            errors.append(f'field "{path}": "{value}" must be a number, not a string')
    return errors


def check_no_raw_json(inp: RuleInput) -> List[str]:
    """Prose contracts must not answer with a bare data structure."""
    if inp.json_only or inp.island is None:
        return []
    stripped = inp.text.strip()
    if not stripped or stripped[0] not in "{[":
        return []
    ratio = len(inp.island.raw) / len(stripped)
    outside = inp.text[:inp.island.start] + inp.text[inp.island.end:]
    if ratio > settings.unwanted_json_ratio and not HUMAN_SENTENCE.search(outside):
        return ["unwanted raw JSON: rewrite the content as a friendly answer in Brazilian Portuguese without data structures"]
    return []


def check_no_payload(inp: RuleInput) -> List[str]:
    """Action confirmations must never expose payloads."""
    if inp.json_only or not inp.has_json:
        return []
    value = inp.island.value
    if (isinstance(value, dict) and value) or (isinstance(value, list) and any(isinstance(v, dict) for v in value)):
        return ["action confirmations must not display JSON or payloads"]
    return []


# Applied to any parsed JSON, whatever the contract
JSON_SAFETY_CHECKS: Tuple[RuleCheck, ...] = (
    check_env_ref_strings,
    check_sensitive_fields,
    check_required_env_refs,
)


def _snake_key(key: str) -> str:
    if key.lower() == "inputper1m":
        return "input_per_1M"
    if key.lower() == "outputper1m":
        return "output_per_1M"
    if "_" not in key and re.search(r"[A-Z]", key):
        return re.sub(r"^_", "", re.sub(r"([A-Z])", r"_\1", key).lower())
    return key


def _to_number(value: str) -> Any:
    text = value.strip()
    for cast in (int, float):
        try:
            number = cast(text)
        except ValueError:
            continue
        if math.isfinite(number):
            return number
    return value


def sanitize(value: Any) -> Any:
    """Repair common, mechanical JSON mistakes before the rules run.

    camelCase keys become snake_case, ``inputPer1M``/``outputPer1M`` get
    their exact spelling, numeric strings under pricing keys become numbers
    and a ``scopes`` string is split into a list.
    """
    if isinstance(value, list):
        return [sanitize(item) for item in value]
    if not isinstance(value, dict):
        return value

    result = {}
    for key, item in value.items():
        new_key = _snake_key(key)
        if new_key in PRICING_KEYS and isinstance(item, str):
            item = _to_number(item)
        elif new_key == "scopes" and isinstance(item, str):
            item = [scope for scope in re.split(r"[,\s]+", item) if scope]
        result[new_key] = sanitize(item)
    return result
