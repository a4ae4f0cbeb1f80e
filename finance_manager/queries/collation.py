"""Locale-aware ordering for category labels."""

import unicodedata


def collation_key(label: str) -> tuple[str, str, str]:
    """
    Sort key that orders labels the way a Portuguese reader expects.

    Primary comparison ignores accents and case ("Educação" sorts with
    "Educacao", before "Freelance"); ties fall back to case-folded text
    and finally the raw label so the order is total.
    """
    decomposed = unicodedata.normalize("NFKD", label)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), label.casefold(), label)
