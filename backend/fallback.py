"""
Hand-curated snapshots served when live acquisition fails.
Schedule lines are beginner groups only, so they survive the client view filter.
"""
from models import (
    KIND_PRICES,
    KIND_SCHEDULE,
    ORIGIN_FALLBACK,
    Snapshot,
    SnapshotMeta,
    utc_now_iso,
)

FALLBACK_SCHEDULE = {
    "Дыбенко": [
        "Hip-Hop (новички) Пн, Ср 18:00",
        "Jazz Funk (начальный) Вт, Чт 19:00",
        "Break Dance (база) Вт, Сб 17:00",
        "Contemporary (с нуля) Пт, Вс 15:00",
        "Latina (новички) Ср, Сб 19:00",
    ],
    "Купчино": [
        "Contemporary (начальный) Пн, Ср 17:30",
        "Shuffle (с нуля) Вт, Чт 18:00",
        "Strip Dance (база) Пт 19:00",
        "Бальные танцы (новички) Пн, Чт 19:30",
    ],
    "Звёздная": [
        "High Heels (новички) Пн, Чт 19:00",
        "Twerk (начальный) Вт, Пт 18:00",
        "Hip-Hop (с нуля) Пн, Ср 18:00",
        "Акробатика (база) Ср, Сб 17:00",
        "Zumba (для всех) Вс 12:00",
    ],
    "Озерки": [
        "Latina Solo (новички) Вт, Чт 18:30",
        "Dance Mix (начальный) Пн, Ср 17:00",
        "K-Pop (с нуля) Сб 13:00",
        "Восточные танцы (база) Ср, Сб 20:00",
    ],
}

FALLBACK_PRICES = {
    "Абонементы": [
        "4 занятия: 3500-4500₽",
        "8 занятий: 6000-8000₽",
        "12 занятий: 8500-10000₽",
    ],
    "Разовые занятия": [
        "Групповое: 1000-1500₽",
        "Индивидуальное: от 1500₽",
    ],
    "Скидки и акции": [
        "Студентам: -10%",
        "Семейным парам: -15%",
        "При покупке 2+ абонементов: -10%",
    ],
    "Пробное занятие": ["1000₽ (засчитывается в первый абонемент)"],
    "Срок действия абонемента": ["30 дней с даты первого занятия"],
    "Заморозка абонемента": ["До 14 дней по запросу"],
}


def _meta() -> SnapshotMeta:
    return SnapshotMeta(
        source=ORIGIN_FALLBACK,
        fetched_at=utc_now_iso(),
        strategy=ORIGIN_FALLBACK,
        origin=ORIGIN_FALLBACK,
    )


def fallback_schedule() -> Snapshot:
    entries = {branch: list(items) for branch, items in FALLBACK_SCHEDULE.items()}
    return Snapshot(kind=KIND_SCHEDULE, entries=entries, meta=_meta())


def fallback_prices(link: str = "") -> Snapshot:
    entries = {category: list(items) for category, items in FALLBACK_PRICES.items()}
    if link:
        entries["Актуальные цены на сайте"] = [link]
    entries["Консультация администратора"] = ["Для точного расчета свяжитесь с нами"]
    return Snapshot(kind=KIND_PRICES, entries=entries, meta=_meta())
