# src/common/localization.py
"""
Модуль локализации.
Тексты для курьеров, клиентов и администраторов хранятся в config/lang_dict.json.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any


FALLBACK_LANGUAGE = "fr"


def get_lang_dict_path() -> Path:
    """Возвращает путь к файлу локализации."""
    return Path(__file__).parent.parent.parent / "config" / "lang_dict.json"


@lru_cache()
def load_lang_dict() -> dict[str, dict[str, str]]:
    """
    Загружает словарь локализации из JSON файла (с кэшированием).

    Returns:
        Словарь {ключ: {язык: текст}}
    """
    lang_path = get_lang_dict_path()
    if not lang_path.exists():
        raise FileNotFoundError(f"Файл локализации не найден: {lang_path}")

    with open(lang_path, "r", encoding="utf-8") as f:
        return json.load(f)


def _default_language() -> str:
    try:
        from src.config import settings
        lang = settings.system.DEFAULT_LANGUAGE
        return lang if isinstance(lang, str) else FALLBACK_LANGUAGE
    except Exception:
        return FALLBACK_LANGUAGE


def get_text(
    key: str,
    lang: str | None = None,
    default: str | None = None,
    **kwargs: Any,
) -> str:
    """
    Получает локализованный текст по ключу.

    Args:
        key: Ключ перевода
        lang: Код языка (fr, ar, en); по умолчанию язык из конфига
        default: Значение, если ключ не найден
        **kwargs: Параметры форматирования

    Returns:
        Локализованный текст

    Example:
        >>> get_text("ORDER_LIMIT_REACHED", "fr", limit=3)
        "Vous avez atteint le nombre maximum de commandes actives (3)"
    """
    try:
        lang_dict = load_lang_dict()
    except FileNotFoundError:
        return default if default else f"[{key}]"

    translations = lang_dict.get(key)
    if not translations:
        return default if default else f"[{key}]"

    text = translations.get(lang or _default_language()) or translations.get(FALLBACK_LANGUAGE)
    if not text:
        text = next(iter(translations.values()), f"[{key}]")

    if kwargs:
        try:
            text = text.format(**kwargs)
        except (KeyError, IndexError):
            pass

    return text


def get_available_languages() -> list[str]:
    """Возвращает список языков, на которые переведён первый ключ словаря."""
    try:
        lang_dict = load_lang_dict()
    except FileNotFoundError:
        return [FALLBACK_LANGUAGE]
    first_key = next(iter(lang_dict.values()), {})
    return list(first_key.keys())


def validate_lang_dict() -> list[str]:
    """
    Проверяет целостность словаря локализации.

    Returns:
        Список ошибок (пустой, если всё в порядке)
    """
    try:
        lang_dict = load_lang_dict()
    except FileNotFoundError as e:
        return [str(e)]

    errors = []
    available_langs = set(get_available_languages())
    for key, translations in lang_dict.items():
        if not isinstance(translations, dict):
            errors.append(f"Ключ '{key}' имеет неверный формат")
            continue
        missing = available_langs - set(translations.keys())
        if missing:
            errors.append(f"Ключ '{key}' не имеет перевода для языков: {sorted(missing)}")
    return errors
