"""Secret detection and masking for model output.

Detectors run in a fixed priority order over the original text:

1. API-key-like tokens are replaced wholesale with a ``[<LABEL>_MASKED]`` placeholder.
2. Email addresses keep the first character of the local part and the domain.
3. Phone-like digit runs keep their last 4 digits.
4. Long hexadecimal identifiers keep their first and last 4 characters.

A lower-priority match that overlaps an earlier one is dropped, so no span is
masked twice. Masked forms never match again, which makes ``mask`` idempotent.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Pattern, Tuple

from contracts import SecretKind, SecretMatch, ScanResult, MaskResult


@dataclass(frozen=True)
class Detector:
    """One secret pattern and how to mask what it matches.

    ``replace`` returns None to reject a candidate match.
    """
    label: str
    kind: SecretKind
    pattern: Pattern[str]
    replace: Callable[[re.Match], Optional[str]]


def _placeholder(label: str) -> Callable[[re.Match], str]:
    token = f"[{label.upper()}_MASKED]"
    return lambda match: token


API_KEY_PATTERNS: List[Tuple[str, str]] = [
    # Without an END marker (truncated output) the base64 lines that follow are masked too
    ("private_key", r"-----BEGIN (?:[A-Z]+ )?PRIVATE KEY-----"
                    r"(?:[\s\S]*?-----END (?:[A-Z]+ )?PRIVATE KEY-----|(?:[ \t]*(?:\r?\n|\\n)[ \t]*[A-Za-z0-9+/=]{16,})*)"),
    ("jwt", r"\beyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}(?:\.[A-Za-z0-9_-]+)?"),
    ("stripe_key", r"\b[sr]k_live_[A-Za-z0-9]{24,}"),
    ("openai_key", r"\bsk-(?:proj-)?[A-Za-z0-9_-]{20,}"),
    ("google_key", r"\bAIza[0-9A-Za-z_-]{35}"),
    ("aws_key", r"\bAKIA[0-9A-Z]{16}\b"),
    ("supabase_key", r"\bsbp_[A-Za-z0-9]{40,}"),
    ("github_token", r"\bgh[pousr]_[A-Za-z0-9]{36,}"),
    ("bearer_token", r"\bBearer\s+[A-Za-z0-9._~+/-]{20,}=*"),
]

EMAIL_PATTERN = re.compile(
    r"(?<![\w.%+-])([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]+@([A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,})"
)

# Maximal run of digits joined by short separators, e.g. "+55 (11) 98765-4321"
PHONE_RUN_PATTERN = re.compile(r"(?<![\w*])\+?\(?\d(?:[ .()-]{0,2}\d)*(?![\w:])")

HEX_ID_PATTERN = re.compile(r"\b[0-9a-fA-F]{16,}\b")

# Already-masked emails reserve their span so the domain is not re-scanned
MASKED_EMAIL_PATTERN = re.compile(
    r"(?<![\w.%+-])[A-Za-z0-9._%+-]\*{3}@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}"
)

_DATE_LIKE = re.compile(r"\d{4}[-./]\d{2}[-./]\d{2}|\d{2}[-./]\d{2}[-./]\d{4}")
_IP_LIKE = re.compile(r"\d{1,3}(?:\.\d{1,3}){3}")

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15
PHONE_KEEP_DIGITS = 4


def _mask_email(match: re.Match) -> str:
    return f"{match.group(1)}***@{match.group(2)}"


def _mask_phone(match: re.Match) -> Optional[str]:
    run = match.group(0)
    digits = sum(ch.isdigit() for ch in run)
    if not PHONE_MIN_DIGITS <= digits <= PHONE_MAX_DIGITS:
        return None
    if _DATE_LIKE.match(run.lstrip("+(")) or _IP_LIKE.fullmatch(run):
        return None

    to_mask = digits - PHONE_KEEP_DIGITS
    out = []
    for ch in run:
        if ch.isdigit() and to_mask > 0:
            out.append("*")
            to_mask -= 1
        else:
            out.append(ch)
    return "".join(out)


def _mask_hex(match: re.Match) -> str:
    value = match.group(0)
    return f"{value[:4]}****{value[-4:]}"


def _overlaps(a: Tuple[int, int], b: Tuple[int, int]) -> bool:
    return a[0] < b[1] and b[0] < a[1]


def default_detectors() -> List[Detector]:
    """Build the detector list in priority order."""
    detectors = [
        Detector(label, SecretKind.API_KEY, re.compile(pattern), _placeholder(label))
        for label, pattern in API_KEY_PATTERNS
    ]
    detectors.append(Detector("email", SecretKind.EMAIL, EMAIL_PATTERN, _mask_email))
    detectors.append(Detector("phone", SecretKind.PHONE, PHONE_RUN_PATTERN, _mask_phone))
    detectors.append(Detector("hex_id", SecretKind.HEX_ID, HEX_ID_PATTERN, _mask_hex))
    return detectors


class SecretScanner:
    """Detects and masks credential-like tokens, emails, phones and opaque ids.

    Stateless; one instance can be shared across concurrent calls.
    """

    def __init__(self, detectors: Optional[List[Detector]] = None):
        self.detectors = detectors if detectors is not None else default_detectors()

    def scan(self, text: str) -> ScanResult:
        """Find non-overlapping secret matches in ``text``.

        Args:
            text: Text to scan

        Returns:
            ScanResult with matches ordered by position
        """
        taken: List[Tuple[int, int]] = [m.span() for m in MASKED_EMAIL_PATTERN.finditer(text)]
        matches: List[SecretMatch] = []

        for detector in self.detectors:
            for found in detector.pattern.finditer(text):
                span = found.span()
                if any(_overlaps(span, other) for other in taken):
                    continue
                replacement = detector.replace(found)
                if replacement is None or replacement == found.group(0):
                    continue
                taken.append(span)
                matches.append(SecretMatch(
                    kind=detector.kind,
                    label=detector.label,
                    span=span,
                    replacement=replacement,
                ))

        matches.sort(key=lambda m: m.span[0])
        return ScanResult(matches=matches)

    def mask(self, text: str) -> MaskResult:
        """Replace every detected secret with its masked form."""
        result = self.scan(text)
        if not result.found:
            return MaskResult(masked=text, labels_found=[])

        parts = []
        cursor = 0
        for match in result.matches:
            start, end = match.span
            parts.append(text[cursor:start])
            parts.append(match.replacement)
            cursor = end
        parts.append(text[cursor:])

        return MaskResult(masked="".join(parts), labels_found=result.labels())

    def mask_value(self, value: Any) -> Any:
        """Recursively mask string values inside a parsed JSON value.

        Numbers whose digits look like a secret (e.g. a phone stored as an
        integer) are replaced by their masked string form. Keys are kept.
        """
        if isinstance(value, dict):
            return {key: self.mask_value(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self.mask_value(item) for item in value]
        if isinstance(value, str):
            return self.mask(value).masked
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            raw = str(value)
            masked = self.mask(raw).masked
            return masked if masked != raw else value
        return value


_default_scanner = SecretScanner()


def scan_secrets(text: str) -> ScanResult:
    """Convenience function: scan with the default detectors."""
    return _default_scanner.scan(text)


def mask_secrets(text: str) -> MaskResult:
    """Convenience function: mask with the default detectors."""
    return _default_scanner.mask(text)
