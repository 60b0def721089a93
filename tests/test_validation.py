from __future__ import annotations

import unittest

from timetable_engine.models import ScheduleEntry, Weekday
from timetable_engine.utils import (
    normalize_time,
    time_to_minutes,
    validate_and_deduplicate,
)


def _entry(subject: str, day: str = "Monday", start: str = "10:40", end: str = "11:30", **fields) -> ScheduleEntry:
    return ScheduleEntry(day=day, start_time=start, end_time=end, subject=subject, **fields)


class TestTimeNormalization(unittest.TestCase):
    def test_normalize_time(self) -> None:
        self.assertEqual(normalize_time("9:00"), "09:00")
        self.assertEqual(normalize_time("09:00"), "09:00")
        self.assertEqual(normalize_time(" 9:05 AM"), "09:05")
        self.assertEqual(normalize_time("nine"), "")
        self.assertEqual(normalize_time(""), "")
        self.assertEqual(normalize_time("25:00"), "")

    def test_time_to_minutes(self) -> None:
        self.assertEqual(time_to_minutes("08:10"), 490)
        self.assertIsNone(time_to_minutes("later"))


class TestWeekday(unittest.TestCase):
    def test_fuzzy_match(self) -> None:
        self.assertEqual(Weekday.fuzzy_match("Mon"), Weekday.MONDAY)
        self.assertEqual(Weekday.fuzzy_match("tuesdya"), Weekday.TUESDAY)
        self.assertEqual(Weekday.fuzzy_match("WEDNESDAY"), Weekday.WEDNESDAY)
        self.assertIsNone(Weekday.fuzzy_match("Funday"))
        self.assertIsNone(Weekday.fuzzy_match(""))

    def test_from_string_is_exact(self) -> None:
        self.assertEqual(Weekday.from_string("friday"), Weekday.FRIDAY)
        self.assertIsNone(Weekday.from_string("Fri"))


class TestValidateAndDeduplicate(unittest.TestCase):
    def test_days_are_canonicalized(self) -> None:
        valid, errors = validate_and_deduplicate([_entry("Physics", day="thu")])
        self.assertEqual(errors, [])
        self.assertEqual(valid[0].day, "Thursday")

    def test_invalid_day_is_reported_and_dropped(self) -> None:
        valid, errors = validate_and_deduplicate([_entry("Physics", day="Someday"), _entry("Biology")])
        self.assertEqual([e.subject for e in valid], ["Biology"])
        self.assertEqual(errors, ['Invalid day "Someday" for subject "Physics"'])

    def test_times_are_padded_and_bad_times_reported(self) -> None:
        valid, errors = validate_and_deduplicate([
            _entry("Physics", start="9:00", end="9:50"),
            _entry("Chemistry", start="soon", end="09:50"),
        ])
        self.assertEqual([(e.start_time, e.end_time) for e in valid], [("09:00", "09:50")])
        self.assertEqual(errors, ["Invalid time for Monday Chemistry"])

    def test_missing_subject_is_dropped_silently(self) -> None:
        valid, errors = validate_and_deduplicate([_entry(""), _entry("P"), _entry("  ")])
        self.assertEqual(valid, [])
        self.assertEqual(errors, [])

    def test_identical_subjects_are_not_repeated(self) -> None:
        valid, _ = validate_and_deduplicate([
            _entry("Biology", start="10:00", end="10:50"),
            _entry("Biology", start="10:00", end="10:50"),
        ])
        self.assertEqual(len(valid), 1)
        self.assertEqual(valid[0].subject, "Biology")

    def test_simultaneous_classes_are_merged(self) -> None:
        valid, _ = validate_and_deduplicate([
            _entry("Physics Lab", teacher="SOE_ASK, CDC_PRIYA", room="LAB02", class_name="CSE 6A"),
            _entry("Chemistry Lab", teacher="CDC_PRIYA", room="LAB03", block="G1", class_name="CSE 6A"),
            _entry("Physics Lab", teacher="", room="LAB02"),
        ])

        self.assertEqual(len(valid), 1)
        merged = valid[0]
        self.assertEqual(merged.subject, "Physics Lab / Chemistry Lab")
        self.assertEqual(merged.teacher, "SOE_ASK, CDC_PRIYA")
        self.assertEqual(merged.room, "LAB02, LAB03")
        self.assertEqual(merged.block, "G1")
        self.assertEqual(merged.class_name, "CSE 6A")

    def test_slot_keys_are_unique_and_order_is_stable(self) -> None:
        entries = [
            _entry("Physics", start="08:10", end="09:00"),
            _entry("Maths", day="Tuesday", start="08:10", end="09:00"),
            _entry("Chemistry", start="8:10", end="9:00"),
        ]
        valid, _ = validate_and_deduplicate(entries)

        keys = [e.slot_key for e in valid]
        self.assertEqual(len(keys), len(set(keys)))
        self.assertEqual([e.subject for e in valid], ["Physics / Chemistry", "Maths"])

    def test_input_entries_are_not_modified(self) -> None:
        entry = _entry("Physics", day="mon", start="8:10", end="9:00")
        validate_and_deduplicate([entry])
        self.assertEqual((entry.day, entry.start_time), ("mon", "8:10"))

    def test_merge_is_idempotent(self) -> None:
        entries = [
            _entry("Physics", teacher="SOE_ASK", room="HF09"),
            _entry("Chemistry", teacher="CDC_PRIYA, SOE_ASK", room="LAB02"),
            _entry("Biology", day="Friday", start="14:00", end="14:50"),
            _entry("x", day="Friday"),
            _entry("Art", day="Caturday"),
        ]
        once, _ = validate_and_deduplicate(entries)
        twice, errors = validate_and_deduplicate(once)

        self.assertEqual(twice, once)
        self.assertEqual(errors, [])


if __name__ == "__main__":
    unittest.main()
