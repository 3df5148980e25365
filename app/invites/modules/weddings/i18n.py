"""UI labels for the public invitation page.

Kazakh and Karakalpak pages use the Russian labels until dedicated copy exists.
"""

from __future__ import annotations

LABELS: dict[str, dict[str, str]] = {
    "en": {
        "invited": "You are invited",
        "countdown": "Countdown",
        "days": "Days",
        "hours": "Hours",
        "minutes": "Minutes",
        "seconds": "Seconds",
        "event_passed": "The celebration has taken place",
        "when": "When",
        "where": "Where",
        "dress_code": "Dress code",
        "our_story": "Our story",
        "gallery": "Gallery",
        "rsvp": "RSVP",
        "rsvp_deadline": "Please reply by",
        "your_name": "Your name",
        "attending": "Will you attend?",
        "confirmed": "Yes, I will attend",
        "confirmed_with_guest": "Yes, with a guest",
        "declined": "Sorry, I can't make it",
        "maybe": "Maybe",
        "find_name": "Find your name",
        "message": "Message",
        "send": "Send",
        "guest_book": "Guest book",
        "leave_wish": "Leave your wishes",
    },
    "ru": {
        "invited": "Приглашаем вас",
        "countdown": "До торжества",
        "days": "Дней",
        "hours": "Часов",
        "minutes": "Минут",
        "seconds": "Секунд",
        "event_passed": "Торжество состоялось",
        "when": "Когда",
        "where": "Где",
        "dress_code": "Дресс-код",
        "our_story": "Наша история",
        "gallery": "Галерея",
        "rsvp": "Подтвердите присутствие",
        "rsvp_deadline": "Пожалуйста, ответьте до",
        "your_name": "Ваше имя",
        "attending": "Вы придёте?",
        "confirmed": "Да, приду",
        "confirmed_with_guest": "Да, с гостем",
        "declined": "К сожалению, не смогу",
        "maybe": "Возможно",
        "find_name": "Найдите своё имя",
        "message": "Сообщение",
        "send": "Отправить",
        "guest_book": "Гостевая книга",
        "leave_wish": "Оставьте пожелание",
    },
    "uz": {
        "invited": "Sizni taklif qilamiz",
        "countdown": "Bayramgacha",
        "days": "Kun",
        "hours": "Soat",
        "minutes": "Daqiqa",
        "seconds": "Soniya",
        "event_passed": "Bayram bo'lib o'tdi",
        "when": "Qachon",
        "where": "Qayerda",
        "dress_code": "Kiyinish tartibi",
        "our_story": "Bizning tariximiz",
        "gallery": "Galereya",
        "rsvp": "Ishtirokingizni tasdiqlang",
        "rsvp_deadline": "Iltimos, javob bering",
        "your_name": "Ismingiz",
        "attending": "Kelasizmi?",
        "confirmed": "Ha, kelaman",
        "confirmed_with_guest": "Ha, mehmon bilan",
        "declined": "Afsuski, kela olmayman",
        "maybe": "Balki",
        "find_name": "Ismingizni toping",
        "message": "Xabar",
        "send": "Yuborish",
        "guest_book": "Mehmonlar kitobi",
        "leave_wish": "Tilaklaringizni qoldiring",
    },
}

_FALLBACKS = {"kk": "ru", "kaa": "ru"}


def labels_for(lang: str) -> dict[str, str]:
    lang = _FALLBACKS.get(lang, lang)
    return LABELS.get(lang, LABELS["en"])
