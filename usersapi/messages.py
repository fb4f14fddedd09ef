"""Human-readable messages for each supported locale."""

from __future__ import annotations

from typing import Dict, Mapping

DEFAULT_LOCALE = "en"

_CATALOGS: Dict[str, Dict[str, str]] = {
    "en": {
        "required": "{label} is required",
        "string": "{label} must be a string",
        "min_length": "{label} must be at least {limit} characters long",
        "max_length": "{label} must be at most {limit} characters long",
        "number": "{label} must be a number",
        "min": "{label} must be at least {limit}",
        "max": "{label} must be at most {limit}",
        "email": "{label} must be a valid email address",
        "boolean": "{label} must be a boolean",
        "array": "{label} must be a list of strings",
        "invalid": "{label} is invalid",
        "body": "Request body must be a JSON object",
        "validation_failed": "Validation failed",
        "not_found": "User not found",
        "route_not_found": "Requested resource not found",
        "internal_error": "Internal server error",
        "list_failed": "Failed to fetch the list of users",
        "get_failed": "Failed to fetch user data",
        "create_failed": "Failed to create user",
        "update_failed": "Failed to update user data",
        "patch_failed": "Failed to partially update user data",
        "delete_failed": "Failed to delete user",
        "deleted": "User deleted successfully",
    },
    "ru": {
        "required": "{label}: обязательное поле",
        "string": "{label}: значение должно быть строкой",
        "min_length": "{label}: должно содержать минимум {limit} символа",
        "max_length": "{label}: должно содержать не более {limit} символов",
        "number": "{label}: значение должно быть числом",
        "min": "{label}: значение должно быть не менее {limit}",
        "max": "{label}: значение должно быть не более {limit}",
        "email": "{label}: некорректный адрес электронной почты",
        "boolean": "{label}: значение должно быть логическим",
        "array": "{label}: значение должно быть списком строк",
        "invalid": "{label}: некорректное значение",
        "body": "Тело запроса должно быть JSON-объектом",
        "validation_failed": "Ошибка валидации",
        "not_found": "Пользователь не найден",
        "route_not_found": "Запрашиваемый ресурс не найден",
        "internal_error": "Внутренняя ошибка сервера",
        "list_failed": "Не удалось получить список пользователей",
        "get_failed": "Не удалось получить данные пользователя",
        "create_failed": "Не удалось создать пользователя",
        "update_failed": "Не удалось обновить данные пользователя",
        "patch_failed": "Не удалось частично обновить данные пользователя",
        "delete_failed": "Не удалось удалить пользователя",
        "deleted": "Пользователь успешно удален",
    },
}

_LABELS: Dict[str, Dict[str, str]] = {
    "en": {
        "firstName": "First name",
        "lastName": "Last name",
        "age": "Age",
        "email": "Email",
        "city": "City",
        "hobbies": "Hobbies",
        "isActive": "Active flag",
    },
    "ru": {
        "firstName": "Имя",
        "lastName": "Фамилия",
        "age": "Возраст",
        "email": "Email",
        "city": "Город",
        "hobbies": "Хобби",
        "isActive": "Признак активности",
    },
}

SUPPORTED_LOCALES = tuple(sorted(_CATALOGS))


def normalize_locale(locale: str | None) -> str:
    if locale is None:
        return DEFAULT_LOCALE
    cleaned = locale.strip().lower()
    if not cleaned:
        return DEFAULT_LOCALE
    if cleaned not in _CATALOGS:
        raise ValueError(
            f"Unsupported locale '{locale}'. Expected one of: {', '.join(SUPPORTED_LOCALES)}"
        )
    return cleaned


def translate(key: str, locale: str = DEFAULT_LOCALE, **params: object) -> str:
    catalog: Mapping[str, str] = _CATALOGS.get(locale, _CATALOGS[DEFAULT_LOCALE])
    template = catalog.get(key) or _CATALOGS[DEFAULT_LOCALE][key]
    return template.format(**params)


def field_label(field: str, locale: str = DEFAULT_LOCALE) -> str:
    return _LABELS.get(locale, _LABELS[DEFAULT_LOCALE]).get(field, field)


__all__ = [
    "DEFAULT_LOCALE",
    "SUPPORTED_LOCALES",
    "field_label",
    "normalize_locale",
    "translate",
]
