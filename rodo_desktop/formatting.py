from datetime import datetime, timezone
from typing import Optional, Tuple

_WEEKDAYS = {
    "zh": ("周一", "周二", "周三", "周四", "周五", "周六", "周日"),
    "en": ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
}

_LABELS = {
    "zh": {"just_now": "刚刚", "minutes": "{n}分钟前", "today": "今天 {t}", "yesterday": "昨天 {t}"},
    "en": {"just_now": "just now", "minutes": "{n} min ago", "today": "today {t}", "yesterday": "yesterday {t}"},
}


def friendly_time(dt: datetime, now: Optional[datetime] = None, lang: str = "zh") -> str:
    """Relative label for a timestamp, rendered in the local time zone.

    刚刚 / N分钟前 / 今天 HH:MM / 昨天 HH:MM / 周X HH:MM / MM-DD HH:MM / YYYY-MM-DD HH:MM
    """
    labels = _LABELS.get(lang, _LABELS["zh"])
    now = now or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    local = dt.astimezone(now.tzinfo) if now.tzinfo else dt
    seconds = (now - dt).total_seconds()
    hm = local.strftime("%H:%M")

    if seconds < 60:
        return labels["just_now"]
    if seconds < 3600:
        return labels["minutes"].format(n=int(seconds // 60))
    days = (now.date() - local.date()).days
    if days == 0:
        return labels["today"].format(t=hm)
    if days == 1:
        return labels["yesterday"].format(t=hm)
    if days < 7:
        return f"{_WEEKDAYS.get(lang, _WEEKDAYS['zh'])[local.weekday()]} {hm}"
    if local.year == now.year:
        return local.strftime("%m-%d %H:%M")
    return local.strftime("%Y-%m-%d %H:%M")


def parse_tags(raw: str) -> Tuple[str, ...]:
    """Split user input on commas (ASCII or full width) and whitespace."""
    text = (raw or "").replace("，", ",").replace("、", ",").replace(",", " ")
    out = []
    for part in text.split():
        part = part.lstrip("#")
        if part and part not in out:
            out.append(part)
    return tuple(out)


def format_tags(tags) -> str:
    return " ".join(f"#{t}" for t in tags)
