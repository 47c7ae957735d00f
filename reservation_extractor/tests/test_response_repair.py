"""Tests for reservation_extractor.core.response_repair module.

Each repair tier is tested on its own, then repair_response() is tested for
tier selection and its never-raise contract.
"""

import json

import pytest

from reservation_extractor.core.response_repair import (
    RepairTier,
    apply_syntax_repairs,
    coerce_records,
    collapse_doubled_quotes,
    insert_missing_commas,
    isolate_record_list,
    join_split_strings,
    parse_strict,
    remove_trailing_commas,
    repair_response,
    scavenge_fields,
    strip_code_fences,
)


VALID = '{"reservations": [{"guestName": "Camila Souza", "checkInDate": "2025-03-01"}]}'


# =============================================================================
# Individual tiers
# =============================================================================


class TestParseStrict:
    def test_object(self):
        assert parse_strict(VALID)["reservations"][0]["guestName"] == "Camila Souza"

    def test_scalar_rejected(self):
        assert parse_strict('"just a string"') is None
        assert parse_strict("42") is None

    def test_invalid_json(self):
        assert parse_strict("{not json") is None


class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences(f"Here you go:\n```json\n{VALID}\n```\nThanks") == VALID

    def test_unclosed_fence(self):
        assert strip_code_fences(f"```json\n{VALID}") == VALID

    def test_no_fence(self):
        assert strip_code_fences(VALID) is None


class TestSyntaxRepairs:
    def test_trailing_commas(self):
        assert remove_trailing_commas('{"a": [1, 2,], "b": 3,}') == '{"a": [1, 2], "b": 3}'

    def test_missing_commas_between_objects(self):
        assert insert_missing_commas('[{"a": 1} {"a": 2}]') == '[{"a": 1},{"a": 2}]'

    def test_doubled_quotes(self):
        assert collapse_doubled_quotes('{"guestName": ""Camila""}') == '{"guestName": "Camila"}'

    def test_empty_string_kept(self):
        assert collapse_doubled_quotes('{"notes": ""}') == '{"notes": ""}'

    def test_split_string_joined(self):
        assert join_split_strings('{"notes": "Chegada\n    tardia"}') == '{"notes": "Chegada tardia"}'

    def test_newline_outside_string_untouched(self):
        text = '{\n  "a": 1\n}'
        assert join_split_strings(text) == text

    def test_combined(self):
        broken = '{"reservations": [{"guestName": "Camila",} {"guestName": "John",},]}'
        assert json.loads(apply_syntax_repairs(broken)) == {
            "reservations": [{"guestName": "Camila"}, {"guestName": "John"}]
        }


class TestIsolateRecordList:
    def test_list_inside_prose(self):
        text = 'Sure! {"reservations": [{"guestName": "Camila"}]} Let me know.'
        assert isolate_record_list(text) == {"reservations": [{"guestName": "Camila"}]}

    def test_truncated_list_closed(self):
        text = '{"reservations": [{"guestName": "Camila", "checkInDate": "2025-03-01"}, {"guestName": "Jo'
        value = isolate_record_list(text)
        assert value is not None
        assert value["reservations"][0] == {"guestName": "Camila", "checkInDate": "2025-03-01"}

    def test_bare_array(self):
        text = 'Result: [{"guestName": "Camila"}, {"guestName": "John"}] done'
        assert len(isolate_record_list(text)["reservations"]) == 2

    def test_single_object_wrapped(self):
        text = 'Result: {"guestName": "Camila"} done'
        assert isolate_record_list(text) == {"reservations": [{"guestName": "Camila"}]}

    def test_nothing_to_isolate(self):
        assert isolate_record_list("no brackets here") is None


class TestScavengeFields:
    def test_json_like_fields(self):
        text = 'guestName: "Camila Souza" ... checkInDate = "2025-03-01" garbage {{{'
        value = scavenge_fields(text)
        assert value == {"reservations": [{"guestName": "Camila Souza", "checkInDate": "2025-03-01"}]}

    def test_label_lines(self):
        text = "Guest: Camila Souza\nCheck-in: 01/03/2025\nCheck-out: 05/03/2025\nProperty: Sete Rios"
        record = scavenge_fields(text)["reservations"][0]
        assert record["guestName"] == "Camila Souza"
        assert record["checkOutDate"] == "05/03/2025"
        assert record["propertyName"] == "Sete Rios"

    def test_nth_match_goes_to_nth_record(self):
        text = '"guestName": "Camila" "guestName": "John" "checkInDate": "2025-03-01"'
        records = scavenge_fields(text)["reservations"]
        assert records == [{"guestName": "Camila", "checkInDate": "2025-03-01"}, {"guestName": "John"}]

    def test_nothing_found(self):
        assert scavenge_fields("I could not find any reservation.") is None


# =============================================================================
# repair_response
# =============================================================================


class TestRepairResponse:
    @pytest.mark.parametrize("raw,tier", [
        (VALID, RepairTier.STRICT),
        (f"```json\n{VALID}\n```", RepairTier.CODE_FENCE),
        ('{"reservations": [{"guestName": "Camila",},]}', RepairTier.SYNTAX_REPAIR),
        (f"Here is the data: {VALID} hope it helps", RepairTier.LIST_ISOLATION),
        ("Guest: Camila Souza\nCheck-in: 01/03/2025", RepairTier.FIELD_SCAVENGE),
        ("Sorry, I cannot help with that.", RepairTier.FAILED),
    ])
    def test_tier_selection(self, raw, tier):
        assert repair_response(raw).tier == tier

    def test_syntax_repair_recovers_value(self):
        outcome = repair_response('{"reservations": [{"guestName": "Camila",},]}')
        assert outcome.value == {"reservations": [{"guestName": "Camila"}]}
        assert outcome.recovered

    def test_failed_returns_empty_list(self):
        outcome = repair_response("nothing useful")
        assert outcome.value == []
        assert not outcome.recovered

    @pytest.mark.parametrize("raw", [None, "", "}}}]]]", "[" * 5000, '{"a": "\\'])
    def test_never_raises(self, raw):
        outcome = repair_response(raw)
        assert isinstance(outcome.tier, RepairTier)


class TestCoerceRecords:
    def test_envelope(self):
        assert coerce_records({"reservations": [{"a": 1}, "junk"]}) == [{"a": 1}]

    def test_envelope_with_single_object(self):
        assert coerce_records({"reservations": {"a": 1}}) == [{"a": 1}]

    def test_bare_record(self):
        assert coerce_records({"guestName": "Camila"}) == [{"guestName": "Camila"}]

    def test_bare_list(self):
        assert coerce_records([{"a": 1}, 2]) == [{"a": 1}]

    def test_empty_envelope(self):
        assert coerce_records({"reservations": []}) == []

    def test_other_values(self):
        assert coerce_records("text") == []
