"""Fetching the public CT log list and picking logs out of it."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from . import DEFAULT_USER_AGENT, LogListError, LogSource, NoLogSourcesError

logger = logging.getLogger(__name__)

LOG_LIST_URL = "https://www.gstatic.com/ct/log_list/v3/log_list.json"


@dataclass
class LogInfo:
    url: str
    description: str
    retired: bool = False


@dataclass
class Operator:
    name: str
    email: List[str] = field(default_factory=list)
    logs: List[LogInfo] = field(default_factory=list)
    tiled_logs: List[LogInfo] = field(default_factory=list)


@dataclass
class LogList:
    operators: List[Operator] = field(default_factory=list)


async def fetch_log_list(
    url: str = LOG_LIST_URL,
    user_agent: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: float = 10.0,
) -> Dict[str, Any]:
    """Download the log list JSON. Any failure is a LogListError."""
    headers = {"User-Agent": user_agent or DEFAULT_USER_AGENT}
    try:
        async with httpx.AsyncClient(headers=headers, transport=transport) as client:
            response = await client.get(url, timeout=timeout)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        raise LogListError(f"Failed to fetch log list: {e}") from e
    except ValueError as e:
        raise LogListError(f"Failed to decode log list: {e}") from e

    if not isinstance(data, dict):
        raise LogListError("Failed to decode log list: top level is not an object")
    return data


def _parse_logs(entries: Any, url_key: str) -> List[LogInfo]:
    if not isinstance(entries, list):
        raise LogListError(f"Expected a list of logs, got {type(entries).__name__}")

    logs = []
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get(url_key), str):
            raise LogListError(f"Log entry without a {url_key!r}: {entry!r}")
        state = entry.get("state") or {}
        logs.append(LogInfo(
            url=entry[url_key],
            description=str(entry.get("description", "")),
            retired=isinstance(state, dict) and "retired" in state,
        ))
    return logs


def parse_log_list(data: Dict[str, Any]) -> LogList:
    """Decode the {operators: [{name, email, logs: [...]}]} document"""
    operators = data.get("operators")
    if not isinstance(operators, list):
        raise LogListError("Log list has no 'operators' list")

    log_list = LogList()
    for operator in operators:
        if not isinstance(operator, dict) or not isinstance(operator.get("name"), str):
            raise LogListError(f"Operator without a name: {operator!r}")
        email = operator.get("email", [])
        if isinstance(email, str):
            email = [email]
        log_list.operators.append(Operator(
            name=operator["name"],
            email=list(email),
            logs=_parse_logs(operator.get("logs", []), "url"),
            tiled_logs=_parse_logs(operator.get("tiled_logs", []), "monitoring_url"),
        ))
    return log_list


def select_logs(
    log_list: LogList,
    operator: str = "Google",
    skip_retired: bool = True,
    include_tiled: bool = True,
) -> List[LogSource]:
    """
    Pick the logs run by one operator.

    Raises NoLogSourcesError if the operator is missing or has nothing left
    after filtering.
    """
    for op in log_list.operators:
        if op.name == operator:
            break
    else:
        raise NoLogSourcesError(f"{operator} operator not found in the log list.")

    sources = [
        LogSource(url=log.url, description=log.description, operator=op.name)
        for log in op.logs
        if not (skip_retired and log.retired)
    ]
    if include_tiled:
        sources.extend(
            LogSource(url=log.url, description=log.description, operator=op.name, tiled=True)
            for log in op.tiled_logs
            if not (skip_retired and log.retired)
        )

    if not sources:
        raise NoLogSourcesError(f"No logs found for the {operator} operator.")

    logger.info(f"Selected {len(sources)} logs run by {operator}")
    return sources
