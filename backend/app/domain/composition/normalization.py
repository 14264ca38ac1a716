"""Single boundary mapping from any accepted payload shape to the canonical one."""

from __future__ import annotations

from typing import Any

from app.schemas.composition import camelize

# Keys that are renamed (after camelCase conversion), not just re-cased.
_RENAMES = {
    "shortMobileArticle": "shortNews",
    "shortArticle": "shortNews",
    "printArticleJson": "printArticle",
}


def _camelize_keys(value: Any) -> Any:
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for key, item in value.items():
            new_key = camelize(str(key))
            new_key = _RENAMES.get(new_key, new_key)
            if new_key in out and item is None:
                continue
            out[new_key] = _camelize_keys(item)
        return out
    if isinstance(value, list):
        return [_camelize_keys(item) for item in value]
    return value


def normalize_submission(payload: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase or snake_case submissions field-for-field onto the canonical shape.

    Handles `print_article`, `web_article`, `short_mobile_article`,
    `status.publish_ready` and the camelCase originals alike.
    """
    if not isinstance(payload, dict):
        return {}
    data = _camelize_keys(payload)

    status = data.pop("status", None)
    if isinstance(status, dict) and "publishReady" in status:
        control = dict(data.get("publishControl") or {})
        control.setdefault("publishReady", status["publishReady"])
        data["publishControl"] = control

    if "publishReady" in data:
        control = dict(data.get("publishControl") or {})
        control.setdefault("publishReady", data.pop("publishReady"))
        data["publishControl"] = control

    media = data.get("media")
    if isinstance(media, dict) and isinstance(media.get("images"), list):
        media["images"] = [
            {"url": item} if isinstance(item, str) else item
            for item in media["images"]
        ]
    return data
