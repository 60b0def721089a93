"""Ordered pattern rules that sort cell text into schedule fields."""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .models import ScheduleEntry

# How a rule fills a field that already holds a value
APPEND = 'append'  # comma-joined list (teachers)
KEEP_FIRST = 'keep_first'
REPLACE = 'replace'

SUBJECT = 'subject'

# Later unclassified tokens shaped like "CS 6" are sections, not subject words
SECTION_LIKE_RE = re.compile(r'^[A-Z]{2,3}\s+\d')
SHORT_SECTION_LENGTH = 10


@dataclass(frozen=True)
class FieldRule:
    """One (pattern -> field) rule. Rules are evaluated in order, first match wins."""
    name: str
    field: str
    pattern: re.Pattern
    mode: str = KEEP_FIRST
    max_length: Optional[int] = None
    requires_digit: bool = False

    def matches(self, text: str) -> bool:
        if self.max_length is not None and len(text) > self.max_length:
            return False
        if self.requires_digit and not any(ch.isdigit() for ch in text):
            return False
        return bool(self.pattern.search(text))


DEFAULT_RULES = (
    # Teacher codes: SOE_ASK, CDC_PRIYA, HCL_Sonia
    FieldRule('teacher_code', 'teacher', re.compile(r'^[A-Z]{2,}_[A-Za-z]+'), APPEND),
    FieldRule('teacher_department', 'teacher', re.compile(r'^(SOE|CDC|HCL|VAC)_', re.IGNORECASE), APPEND),
    # Rooms: HF09, LAB02, HS-08, NG03, G1
    FieldRule('room_code', 'room', re.compile(r'^[A-Z]{1,4}-?\d{1,3}$', re.IGNORECASE), KEEP_FIRST, max_length=8),
    FieldRule('room_lab', 'room', re.compile(r'lab', re.IGNORECASE), KEEP_FIRST, max_length=10, requires_digit=True),
    # Sections: CSE 6A, Group 1
    FieldRule('class_program', 'class_name', re.compile(r'^(CSE|ECE|ME|CE|EE|IT|BT)\s*\d', re.IGNORECASE)),
    FieldRule('class_group', 'class_name', re.compile(r'^group\s*\d', re.IGNORECASE)),
    # Blocks: Block A, Blk B. A bare G1 already matches room_code
    FieldRule('block_group', 'block', re.compile(r'^G\d$', re.IGNORECASE), REPLACE),
    FieldRule('block_name', 'block', re.compile(r'^(Block|Blk)\s*[A-Z]', re.IGNORECASE), REPLACE),
)


class FieldClassifier:
    """Classifies the text runs of one sub-group into a ScheduleEntry."""

    def __init__(self, rules: Sequence[FieldRule] = DEFAULT_RULES):
        self.rules = tuple(rules)

    def match_rule(self, text: str) -> Optional[FieldRule]:
        for rule in self.rules:
            if rule.matches(text):
                return rule
        return None

    def classify_token(self, text: str) -> Optional[str]:
        """
        Field a single token belongs to.

        Returns:
            Field name, SUBJECT for unmatched meaningful text, or None for
            tokens too short to carry meaning
        """
        rule = self.match_rule(text)
        if rule:
            return rule.field
        if len(text) > 1:
            return SUBJECT
        return None

    def classify(
        self,
        texts: Iterable[str],
        day: str,
        start_time: str,
        end_time: str,
    ) -> Optional[ScheduleEntry]:
        """
        Build one entry from the texts of a sub-group, in reading order.

        Returns:
            ScheduleEntry, or None when no token qualified as the subject
        """
        fields = {'subject': '', 'teacher': '', 'room': '', 'block': '', 'class_name': ''}

        for text in texts:
            rule = self.match_rule(text)
            if rule:
                self._fill(fields, rule.field, text, rule.mode)
            elif len(text) > 1:
                self._fill_unclassified(fields, text)

        if not fields['subject']:
            return None

        return ScheduleEntry(
            day=day,
            start_time=start_time,
            end_time=end_time,
            **{name: value.strip() for name, value in fields.items()},
        )

    @staticmethod
    def _fill(fields: dict, name: str, text: str, mode: str) -> None:
        current = fields[name]
        if mode == APPEND:
            fields[name] = f"{current}, {text}" if current else text
        elif mode == REPLACE or not current:
            fields[name] = text

    @staticmethod
    def _fill_unclassified(fields: dict, text: str) -> None:
        if not fields['subject']:
            fields['subject'] = text
        elif SECTION_LIKE_RE.match(text):
            if not fields['class_name']:
                fields['class_name'] = text
        elif not fields['class_name'] and len(text) < SHORT_SECTION_LENGTH:
            fields['class_name'] = text
        else:
            fields['subject'] = f"{fields['subject']} {text}"
