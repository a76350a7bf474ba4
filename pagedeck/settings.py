from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    codec: str = 'pypdf'
    batch_policy: str = 'skip'
    upload_workers: int = 4
    thumbnail_scale: float = 0.3
    insight_max_pages: int = 5
    merge_filename: str = 'merged_document.pdf'
    log_level: str = 'INFO'
    max_content_length: int = 100 * 1024 * 1024
    secret_key: str = 'pagedeck-dev-key'
    gemini_api_key: str | None = None
    gemini_model: str = 'gemini-2.5-flash'
    gemini_timeout_seconds: float = 30.0
    bind_host: str = '127.0.0.1'
    port: int = 1000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            codec=parse_choice_env('PAGEDECK_CODEC', 'pypdf', ('pypdf', 'pikepdf')),
            batch_policy=parse_choice_env('PAGEDECK_BATCH_POLICY', 'skip', ('skip', 'abort')),
            upload_workers=parse_int_env('PAGEDECK_UPLOAD_WORKERS', 4),
            thumbnail_scale=parse_float_env('PAGEDECK_THUMBNAIL_SCALE', 0.3),
            insight_max_pages=parse_int_env('PAGEDECK_INSIGHT_MAX_PAGES', 5),
            merge_filename=parse_str_env('PAGEDECK_MERGE_FILENAME', 'merged_document.pdf'),
            log_level=parse_str_env('PAGEDECK_LOG_LEVEL', 'INFO').upper(),
            max_content_length=parse_int_env('MAX_CONTENT_LENGTH', 100 * 1024 * 1024),
            secret_key=parse_str_env('SECRET_KEY', 'pagedeck-dev-key'),
            gemini_api_key=parse_str_env('GEMINI_API_KEY') or parse_str_env('API_KEY'),
            gemini_model=parse_str_env('GEMINI_MODEL', 'gemini-2.5-flash'),
            gemini_timeout_seconds=parse_float_env('GEMINI_TIMEOUT_SECONDS', 30.0),
            bind_host=parse_str_env('BIND_HOST', '127.0.0.1'),
            port=parse_int_env('PORT', 1000),
        )


def parse_str_env(name: str, default: str | None = None) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip()
    if not normalized:
        return default
    return normalized


def parse_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a numeric value, got {raw!r}") from exc


def parse_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer value, got {raw!r}") from exc


def parse_choice_env(name: str, default: str, choices: tuple[str, ...]) -> str:
    value = (parse_str_env(name, default) or default).lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value
