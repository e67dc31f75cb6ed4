from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Mapping


class ConfigError(ValueError):
    """
    配置校验失败。errors 保存全部问题，便于一次性修正。
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = tuple(errors)


def _require_dict(value: Any, *, where: str) -> Mapping[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError([f"Expected object at {where}, got {type(value).__name__}"])
    return value


def _get_bool(d: Mapping[str, Any], key: str, default: bool, *, where: str, errors: list[str]) -> bool:
    v = d.get(key, default)
    if isinstance(v, bool):
        return v
    if isinstance(v, str) and v.strip().lower() in ("true", "false"):
        return v.strip().lower() == "true"
    errors.append(f"if provided, {where}.{key} must be true or false")
    return default


def _get_positive_int(d: Mapping[str, Any], key: str, default: int, *, where: str, errors: list[str]) -> int:
    v = d.get(key, default)
    if isinstance(v, bool):
        errors.append(f"{where}.{key} must be a positive integer, got {v!r}")
        return default
    try:
        n = int(v)
    except (TypeError, ValueError):
        errors.append(f"{where}.{key} must be a positive integer, got {v!r}")
        return default
    if n <= 0:
        errors.append(f"{where}.{key} must be a positive integer, got {v!r}")
        return default
    return n


def _get_str(d: Mapping[str, Any], key: str, default: str | None = None) -> str | None:
    v = d.get(key, default)
    if v is None:
        return None
    return str(v)


@dataclass(frozen=True, slots=True)
class CalendarConfig:
    """
    单个日历的监控配置。

    calendar_id:
      - 日历 id（必填，非空）
    horizon_days:
      - 向前拉取的天数窗口，即 [now, now + horizon_days]
    expected_receive_period_days:
      - 允许多少天内没有新通知仍视为正常（仅健康检查使用）
    """

    calendar_id: str
    horizon_days: int = 10
    expected_receive_period_days: int = 31


@dataclass(frozen=True, slots=True)
class GoogleConfig:
    """
    Google service account 凭据来源：环境变量（JSON 内容）优先，其次文件路径。

    max_results 为单次 events.list 的最大条数（不翻页）。
    """

    credentials_env: str | None = "GOOGLE_SERVICE_ACCOUNT_JSON"
    credentials_path: str | None = None
    max_results: int = 10


@dataclass(frozen=True, slots=True)
class NotifyConfig:
    log: bool = True
    jsonl_path: str | None = None


@dataclass(frozen=True, slots=True)
class AppConfig:
    """
    应用总配置。

    poll_interval_seconds:
      - 轮询间隔（daemon 模式下生效），默认每小时
    debug:
      - 逐条事件决策日志是否以 INFO 输出；解析配置时确定，运行期不再解析
    sqlite_path:
      - SQLite 状态库路径（已通知集合 / 通知历史 / 拉取错误）
    """

    poll_interval_seconds: int
    debug: bool
    sqlite_path: str
    google: GoogleConfig
    calendars: tuple[CalendarConfig, ...]
    notify: NotifyConfig

    def resolve_env(self, env_name: str | None) -> str | None:
        if not env_name:
            return None
        return os.environ.get(env_name)

    def resolve_credentials(self) -> str | None:
        """
        返回 service account JSON 内容；两处都未配置时返回 None。
        """
        from_env = self.resolve_env(self.google.credentials_env)
        if from_env:
            return from_env
        if self.google.credentials_path:
            with open(self.google.credentials_path, encoding="utf-8") as f:
                return f.read()
        return None


def _parse_calendar(raw: Any, *, where: str, errors: list[str]) -> CalendarConfig | None:
    if not isinstance(raw, dict):
        errors.append(f"Expected object at {where}, got {type(raw).__name__}")
        return None
    calendar_id = str(raw.get("calendar_id") or "").strip()
    if not calendar_id:
        errors.append(f"{where}.calendar_id is a required field")
    cal = CalendarConfig(
        calendar_id=calendar_id,
        horizon_days=_get_positive_int(raw, "horizon_days", 10, where=where, errors=errors),
        expected_receive_period_days=_get_positive_int(
            raw, "expected_receive_period_days", 31, where=where, errors=errors
        ),
    )
    return cal if calendar_id else None


def parse_config(raw: Any) -> AppConfig:
    """
    由已解析的 JSON 对象构建并校验配置；所有问题收集后一次性抛出 ConfigError。
    """
    root = _require_dict(raw, where="$")
    errors: list[str] = []

    poll_interval_seconds = _get_positive_int(root, "poll_interval_seconds", 3600, where="$", errors=errors)
    debug = _get_bool(root, "debug", False, where="$", errors=errors)

    state = _require_dict(root.get("state", {}), where="$.state")
    sqlite_path = str(state.get("sqlite_path") or "./cec_state.sqlite3")

    g = _require_dict(root.get("google", {}), where="$.google")
    google_cfg = GoogleConfig(
        credentials_env=_get_str(g, "credentials_env", "GOOGLE_SERVICE_ACCOUNT_JSON"),
        credentials_path=_get_str(g, "credentials_path", None),
        max_results=_get_positive_int(g, "max_results", 10, where="$.google", errors=errors),
    )

    raw_calendars = root.get("calendars", [])
    calendars: list[CalendarConfig] = []
    if not isinstance(raw_calendars, list):
        errors.append(f"Expected list at $.calendars, got {type(raw_calendars).__name__}")
        raw_calendars = []
    seen_ids: set[str] = set()
    for i, item in enumerate(raw_calendars):
        cal = _parse_calendar(item, where=f"$.calendars[{i}]", errors=errors)
        if cal is None:
            continue
        if cal.calendar_id in seen_ids:
            errors.append(f"$.calendars[{i}].calendar_id is duplicated: {cal.calendar_id}")
            continue
        seen_ids.add(cal.calendar_id)
        calendars.append(cal)
    if not raw_calendars:
        errors.append("$.calendars must contain at least one calendar")

    notify = _require_dict(root.get("notify", {"log": {}}), where="$.notify")
    for key in ("log", "jsonl"):
        if key in notify and not isinstance(notify[key], dict):
            errors.append(f"if provided, $.notify.{key} must be an object, got {type(notify[key]).__name__}")
    jsonl_path: str | None = None
    if isinstance(notify.get("jsonl"), dict):
        jsonl_path = _get_str(notify["jsonl"], "path", None)
        if not jsonl_path:
            errors.append("$.notify.jsonl.path is a required field")
    notify_cfg = NotifyConfig(log=isinstance(notify.get("log"), dict), jsonl_path=jsonl_path or None)
    if "log" not in notify and "jsonl" not in notify:
        errors.append("$.notify must enable at least one sink (log or jsonl)")

    if errors:
        raise ConfigError(errors)

    return AppConfig(
        poll_interval_seconds=poll_interval_seconds,
        debug=debug,
        sqlite_path=sqlite_path,
        google=google_cfg,
        calendars=tuple(calendars),
        notify=notify_cfg,
    )


def load_config(config_path: str) -> AppConfig:
    """
    使用 JSON 作为配置落地形式。

    JSON 顶层结构（示意）：
    {
      "poll_interval_seconds": 3600,
      "debug": false,
      "state": { "sqlite_path": "./cec_state.sqlite3" },
      "google": { "credentials_env": "GOOGLE_SERVICE_ACCOUNT_JSON" },
      "calendars": [ { "calendar_id": "...", "horizon_days": 10, "expected_receive_period_days": 31 } ],
      "notify": { "log": {}, "jsonl": { "path": "./notifications.jsonl" } }
    }
    """
    with open(config_path, "rb") as f:
        raw = json.loads(f.read().decode("utf-8"))
    return parse_config(raw)
