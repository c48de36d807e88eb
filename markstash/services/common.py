from flask import request


def json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def clean_text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def clean_tags(raw) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.replace(";", ",").split(",")
    elif isinstance(raw, list):
        items = raw
    else:
        raise ValueError("tags must be a list of strings")

    tags: list[str] = []
    for item in items:
        if not isinstance(item, str):
            raise ValueError("tags must be a list of strings")
        name = item.strip()
        if name and name not in tags:
            tags.append(name)
    return tags


def email_prefix(email: str) -> str:
    return (email or "").split("@")[0]
