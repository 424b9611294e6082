"""Tests for JSON import/export of holdings."""

import json
from datetime import date

import pytest

from fundfolio.core.exceptions import PositionImportError
from fundfolio.core.portfolio.records import ConfirmedRecord, PendingRecord, RecordType
from fundfolio.core.portfolio.serialization import (
    holdings_from_json,
    holdings_to_json,
    validate_payload,
)

SAMPLE = """
[
  {
    "code": "161725",
    "name": "Consumer Index",
    "shares": 1000,
    "cost": 1.2,
    "realizedProfit": 15.5,
    "tag": "consumer,index",
    "tradingRecords": [
      {"date": "2024-01-02", "type": "buy", "nav": 1.25, "sharesChange": 400, "amount": 500},
      {"date": "2024-01-05", "type": "sell", "nav": 1.3, "sharesChange": -100,
       "amount": -130, "realizedProfitChange": 8.57},
      {"date": "2024-01-08", "type": "buy", "value": 200}
    ]
  },
  {"code": "110011", "shares": 0, "cost": 0, "realizedProfit": 0}
]
"""


class TestHoldingsFromJson:
    """Tests for parsing exported documents."""

    def test_parses_positions_and_records(self):
        holdings = holdings_from_json(SAMPLE)

        assert [h.code for h in holdings] == ["161725", "110011"]
        first = holdings[0]
        assert first.name == "Consumer Index"
        assert first.initial_position.shares == 1000
        assert first.initial_position.average_cost == 1.2
        assert first.initial_position.realized_profit == 15.5
        assert first.tags == ["consumer", "index"]

    def test_record_kinds(self):
        records = holdings_from_json(SAMPLE)[0].records

        assert isinstance(records[0], ConfirmedRecord)
        assert records[0].realized_profit_change is None
        assert records[1].type is RecordType.SELL
        assert records[1].realized_profit_change == 8.57
        assert isinstance(records[2], PendingRecord)
        assert records[2].date == date(2024, 1, 8)
        assert records[2].value == 200

    def test_missing_optional_fields(self):
        second = holdings_from_json(SAMPLE)[1]

        assert second.name == ""
        assert second.tag == ""
        assert second.records == ()

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty_input(self, text):
        with pytest.raises(PositionImportError, match="Input is empty"):
            holdings_from_json(text)

    def test_syntax_error_reports_location(self):
        with pytest.raises(PositionImportError, match=r"Invalid JSON \(line 1, column"):
            holdings_from_json('[{"code": "A",}]')

    def test_duplicate_code(self):
        text = json.dumps([
            {"code": "A", "shares": 0, "cost": 0, "realizedProfit": 0},
            {"code": "A", "shares": 1, "cost": 1, "realizedProfit": 0},
        ])

        with pytest.raises(PositionImportError, match="more than once"):
            holdings_from_json(text)

    def test_bad_record_date(self):
        text = json.dumps([{
            "code": "A", "shares": 0, "cost": 0, "realizedProfit": 0,
            "tradingRecords": [{"date": "2024-13-01", "type": "buy", "value": 10}],
        }])

        with pytest.raises(PositionImportError, match="Invalid record date"):
            holdings_from_json(text)

    def test_record_sign_errors_become_import_errors(self):
        text = json.dumps([{
            "code": "A", "shares": 0, "cost": 0, "realizedProfit": 0,
            "tradingRecords": [
                {"date": "2024-01-02", "type": "buy", "nav": 1, "sharesChange": -5, "amount": 5}
            ],
        }])

        with pytest.raises(PositionImportError, match="Buy"):
            holdings_from_json(text)


class TestValidatePayload:
    """Tests for shape validation."""

    def test_not_an_array(self):
        with pytest.raises(PositionImportError, match="JSON array"):
            validate_payload({"code": "A"})

    @pytest.mark.parametrize(
        "item, message",
        [
            ("A", "is not an object"),
            ({"shares": 1, "cost": 1, "realizedProfit": 0}, "string 'code'"),
            ({"code": "A", "shares": "1", "cost": 1, "realizedProfit": 0}, "numeric 'shares'"),
            ({"code": "A", "shares": 1, "cost": 1}, "numeric 'realizedProfit'"),
            ({"code": "A", "shares": True, "cost": 1, "realizedProfit": 0}, "numeric 'shares'"),
            ({"code": "A", "shares": 1, "cost": 1, "realizedProfit": 0, "tag": 5}, "'tag' must be a string"),
        ],
    )
    def test_position_errors(self, item, message):
        with pytest.raises(PositionImportError, match=message):
            validate_payload([item])

    @pytest.mark.parametrize(
        "record, message",
        [
            ({"date": "2024-01-02", "type": "transfer", "value": 1}, "unknown type"),
            ({"type": "buy", "value": 1}, "string 'date'"),
            ({"date": "2024-01-02", "type": "buy", "nav": 1.0}, "either 'value'"),
        ],
    )
    def test_record_errors(self, record, message):
        item = {"code": "A", "shares": 0, "cost": 0, "realizedProfit": 0, "tradingRecords": [record]}

        with pytest.raises(PositionImportError, match=message):
            validate_payload([item])


class TestHoldingsToJson:
    """Tests for export."""

    def test_export_reimports_unchanged(self):
        holdings = holdings_from_json(SAMPLE)

        assert holdings_from_json(holdings_to_json(holdings)) == holdings

    def test_optional_keys_omitted(self):
        exported = json.loads(holdings_to_json(holdings_from_json(SAMPLE)))

        assert set(exported[1]) == {"code", "shares", "cost", "realizedProfit"}
        assert exported[0]["tradingRecords"][0] == {
            "date": "2024-01-02",
            "type": "buy",
            "nav": 1.25,
            "sharesChange": 400,
            "amount": 500,
        }
        assert exported[0]["tradingRecords"][2] == {"date": "2024-01-08", "type": "buy", "value": 200}

    def test_non_ascii_names_are_kept(self):
        holdings = holdings_from_json('[{"code": "A", "name": "消费指数", "shares": 0, "cost": 0, "realizedProfit": 0}]')

        assert "消费指数" in holdings_to_json(holdings)
