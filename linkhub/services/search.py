from __future__ import annotations

from rapidfuzz import fuzz

# (reason, weight) for the first title test that matches.
_TITLE_TIERS = (
    ("exact_title", 150, lambda q, title: q == title),
    ("title_prefix", 120, lambda q, title: title.startswith(q)),
    ("title_contains", 100, lambda q, title: q in title),
)

# field, reason, weight for plain substring hits outside the title.
_FIELD_HITS = (
    ("url", "url_contains", 50),
    ("notes", "notes_contains", 35),
)

# field, reason, minimum ratio, weight, minimum query length.
_FUZZY_RULES = (
    ("title", "title_fuzzy", 72, 0.30, 1),
    ("notes", "notes_fuzzy", 88, 0.16, 4),
)

_FUZZY_SCAN_LIMIT = 6000


def _fields(link) -> dict[str, str]:
    return {
        name: (getattr(link, name, None) or "").strip().lower()
        for name in ("title", "notes", "url", "category")
    }


def score_link(link, query: str) -> tuple[float, list[str]]:
    q = query.strip().lower()
    fields = _fields(link)
    score = 0.0
    reasons: list[str] = []

    for reason, weight, test in _TITLE_TIERS:
        if test(q, fields["title"]):
            score += weight
            reasons.append(reason)
            break

    if q == fields["category"]:
        score += 60
        reasons.append("category_match")

    for name, reason, weight in _FIELD_HITS:
        if fields[name] and q in fields[name]:
            score += weight
            reasons.append(reason)

    for name, reason, threshold, weight, min_length in _FUZZY_RULES:
        text = fields[name]
        if not text or len(q) < min_length:
            continue
        ratio = fuzz.partial_ratio(q, text[:_FUZZY_SCAN_LIMIT])
        if ratio >= threshold:
            score += ratio * weight
            reasons.append(reason)

    return score, reasons


def search_links(links, query: str, limit: int = 50) -> list[dict]:
    """Rank ``links`` against ``query``; entries with no matching rule are dropped."""
    if not query or not query.strip():
        return []

    ranked = []
    for link in links:
        score, reasons = score_link(link, query)
        if reasons:
            ranked.append({"link": link, "score": round(score, 2), "reasons": reasons})

    ranked.sort(key=lambda item: item["score"], reverse=True)
    return ranked[:limit]
