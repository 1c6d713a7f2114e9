"""Display formatting for prices, sizes, phone numbers and dates.

Prices are stored in 萬 (ten-thousand NTD) and sizes in 坪.
"""

import re
from datetime import datetime, timezone
from typing import Optional, Union

DateLike = Union[str, datetime]


def format_price(price: float) -> str:
    """Format a total price in 萬, switching to 億 from 10000 萬 upward."""
    if price >= 10000:
        return f"{price / 10000:.1f} 億"
    return f"{_plain_number(price)} 萬"


def format_price_per_ping(price: float) -> str:
    return f"{price:.1f} 萬/坪"


def format_size(size: float) -> str:
    return f"{_plain_number(size)} 坪"


def format_phone(phone: str) -> str:
    """Group Taiwanese phone digits.

    Mobile numbers (10 digits, ``09`` prefix) become ``0912-345-678``, other
    10-digit numbers with a leading ``0`` are treated as landlines
    (``02-1234-5678``). Anything else is returned unchanged.
    """
    digits = re.sub(r"\D", "", phone)

    if len(digits) == 10 and digits.startswith("09"):
        return f"{digits[:4]}-{digits[4:7]}-{digits[7:]}"

    if len(digits) == 10 and digits.startswith("0"):
        return f"{digits[:2]}-{digits[2:6]}-{digits[6:]}"

    return phone


def format_date(value: DateLike) -> str:
    """Long zh-TW date, e.g. ``2024年12月9日``."""
    moment = parse_timestamp(value)
    return f"{moment.year}年{moment.month}月{moment.day}日"


def format_relative_time(value: DateLike, now: Optional[datetime] = None) -> str:
    """Coarse relative age: 今天, 昨天, N 天前, N 週前, N 個月前, N 年前."""
    moment = parse_timestamp(value)
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    diff_days = (now - moment).days

    if diff_days == 0:
        return "今天"
    if diff_days == 1:
        return "昨天"
    if diff_days < 7:
        return f"{diff_days} 天前"
    if diff_days < 30:
        return f"{diff_days // 7} 週前"
    if diff_days < 365:
        return f"{diff_days // 30} 個月前"
    return f"{diff_days // 365} 年前"


def format_clock(seconds: float) -> str:
    """Playback clock as zero-padded ``MM:SS``."""
    seconds = max(seconds, 0)
    return f"{int(seconds // 60):02d}:{int(seconds % 60):02d}"


def parse_timestamp(value: DateLike) -> datetime:
    """Parse a backend ISO timestamp into an aware UTC datetime."""
    if isinstance(value, datetime):
        moment = value
    else:
        # Postgres emits "+00:00" but older payloads carry a trailing "Z"
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _plain_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)
