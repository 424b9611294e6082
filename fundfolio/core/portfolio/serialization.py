"""
JSON import/export of holdings.

Payload shape: a JSON array of positions

    {
        "code": "161725",
        "name": "...",              # optional
        "shares": 1000.0,
        "cost": 1.2,                # average cost per share
        "realizedProfit": 0.0,
        "tag": "consumer,index",    # optional
        "tradingRecords": [         # optional
            {"date": "2024-01-02", "type": "buy", "value": 1000},
            {"date": "2024-01-03", "type": "sell", "nav": 1.1,
             "sharesChange": -100, "amount": -110, "realizedProfitChange": 10}
        ]
    }

A record carrying `value` is pending; one carrying `nav`, `sharesChange`
and `amount` is confirmed.
"""

import json
import logging
from datetime import date
from typing import Any, Iterable

from fundfolio.core.exceptions import PositionImportError, RecordValidationError
from fundfolio.core.portfolio.records import (
    ConfirmedRecord,
    Holding,
    PendingRecord,
    Position,
    RecordType,
    TradingRecord,
    validate_record,
)

logger = logging.getLogger(__name__)

_RECORD_TYPES = {t.value for t in RecordType}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_payload(data: Any) -> list[dict]:
    """
    Check the decoded JSON shape.

    Raises:
        PositionImportError: Describing the first problem found
    """
    if not isinstance(data, list):
        raise PositionImportError("Expected a JSON array of fund positions")

    for i, item in enumerate(data):
        where = f"position #{i + 1}"
        if not isinstance(item, dict):
            raise PositionImportError(f"{where} is not an object")
        if not isinstance(item.get("code"), str) or not item["code"].strip():
            raise PositionImportError(f"{where} must have a string 'code'")
        where = f"position {item['code']}"
        for key in ("shares", "cost", "realizedProfit"):
            if not _is_number(item.get(key)):
                raise PositionImportError(f"{where} must have a numeric '{key}'")
        for key in ("tag", "name"):
            if key in item and item[key] is not None and not isinstance(item[key], str):
                raise PositionImportError(f"{where}: '{key}' must be a string")

        records = item.get("tradingRecords")
        if records is None:
            continue
        if not isinstance(records, list):
            raise PositionImportError(f"{where}: 'tradingRecords' must be an array")
        for j, record in enumerate(records):
            rwhere = f"{where}, record #{j + 1}"
            if not isinstance(record, dict):
                raise PositionImportError(f"{rwhere} is not an object")
            if not isinstance(record.get("date"), str):
                raise PositionImportError(f"{rwhere} must have a string 'date'")
            if record.get("type") not in _RECORD_TYPES:
                raise PositionImportError(
                    f"{rwhere} has unknown type {record.get('type')!r}"
                )
            is_pending = _is_number(record.get("value"))
            is_confirmed = all(_is_number(record.get(k)) for k in ("nav", "sharesChange", "amount"))
            if not is_pending and not is_confirmed:
                raise PositionImportError(
                    f"{rwhere} must carry either 'value' or 'nav', 'sharesChange' and 'amount'"
                )
    return data


def _record_from_dict(raw: dict) -> TradingRecord:
    try:
        day = date.fromisoformat(raw["date"])
    except ValueError as e:
        raise PositionImportError(f"Invalid record date {raw['date']!r}") from e

    kind = RecordType(raw["type"])
    if _is_number(raw.get("nav")) and _is_number(raw.get("sharesChange")) and _is_number(raw.get("amount")):
        realized = raw.get("realizedProfitChange")
        record = ConfirmedRecord(
            date=day,
            type=kind,
            nav=float(raw["nav"]),
            shares_change=float(raw["sharesChange"]),
            amount=float(raw["amount"]),
            realized_profit_change=float(realized) if _is_number(realized) else None,
        )
    else:
        record = PendingRecord(date=day, type=kind, value=float(raw["value"]))

    try:
        return validate_record(record)
    except RecordValidationError as e:
        raise PositionImportError(str(e)) from e


def holdings_from_json(text: str) -> list[Holding]:
    """
    Parse and validate an exported JSON document.

    Raises:
        PositionImportError: Empty input, JSON syntax error, or wrong shape
    """
    if not text or not text.strip():
        raise PositionImportError("Input is empty. Provide the exported JSON data.")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise PositionImportError(
            f"Invalid JSON (line {e.lineno}, column {e.colno}): {e.msg}"
        ) from e

    holdings = []
    seen = set()
    for item in validate_payload(data):
        code = item["code"].strip()
        if code in seen:
            raise PositionImportError(f"Fund {code} appears more than once")
        seen.add(code)
        records = tuple(_record_from_dict(r) for r in item.get("tradingRecords") or [])
        holdings.append(
            Holding(
                code=code,
                name=item.get("name") or "",
                initial_position=Position(
                    shares=float(item["shares"]),
                    average_cost=float(item["cost"]),
                    realized_profit=float(item["realizedProfit"]),
                ),
                tag=item.get("tag") or "",
                records=records,
            )
        )

    logger.info(f"Parsed {len(holdings)} positions from JSON")
    return holdings


def record_to_dict(record: TradingRecord) -> dict:
    if isinstance(record, PendingRecord):
        return {"date": record.date.isoformat(), "type": record.type.value, "value": record.value}
    data = {
        "date": record.date.isoformat(),
        "type": record.type.value,
        "nav": record.nav,
        "sharesChange": record.shares_change,
        "amount": record.amount,
    }
    if record.realized_profit_change is not None:
        data["realizedProfitChange"] = record.realized_profit_change
    return data


def holdings_to_json(holdings: Iterable[Holding], indent: int = 2) -> str:
    """Export holdings in the import format."""
    payload = []
    for holding in holdings:
        item = {
            "code": holding.code,
            "shares": holding.initial_position.shares,
            "cost": holding.initial_position.average_cost,
            "realizedProfit": holding.initial_position.realized_profit,
        }
        if holding.name:
            item["name"] = holding.name
        if holding.tag:
            item["tag"] = holding.tag
        if holding.records:
            item["tradingRecords"] = [record_to_dict(r) for r in holding.records]
        payload.append(item)
    return json.dumps(payload, indent=indent, ensure_ascii=False)
