"""
services/display_policy.py

Subject ordering and labeling for tabs, the exam overview and results.
Pure functions, no session state.
"""

import unicodedata
from typing import Callable, List, NamedTuple, Optional, Sequence

from prepwise_exam.models.question_model import Subject
from prepwise_exam.models.session_state import ExamConfig

PinnedPredicate = Callable[[Subject], bool]


class DisplaySubject(NamedTuple):
    subject: Subject
    label: str
    pinned: bool


def pinned_predicate_for(term: str) -> PinnedPredicate:
    """Predicate matching subjects whose name contains `term`, case-insensitively."""
    needle = term.casefold()
    return lambda subject: needle in subject.name.casefold()


def collation_key(name: str) -> tuple:
    """
    Accent- and case-insensitive sort key that does not depend on the process
    locale: "Économie" sorts with "Economie", between "Biology" and "Zoology".
    The case-folded original breaks ties between names that fold together.
    """
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), name.casefold())


def order_and_label(
    subjects: Sequence[Subject],
    pinned_predicate: Optional[PinnedPredicate] = None,
    pinned_label: Optional[str] = None,
) -> List[DisplaySubject]:
    """
    Order subjects for display: pinned first, the rest alphabetically by name.

    Args:
        subjects:         Subjects in any order.
        pinned_predicate: Marks pinned subjects. Defaults to the configured term.
        pinned_label:     Alias shown for pinned subjects. Defaults to the configured label.

    Returns:
        DisplaySubject list. The sort is stable, so subjects with equal keys
        keep their input order.
    """
    defaults = ExamConfig()
    if pinned_predicate is None:
        pinned_predicate = pinned_predicate_for(defaults.pinned_term)
    if pinned_label is None:
        pinned_label = defaults.pinned_label

    flagged = [(s, pinned_predicate(s)) for s in subjects]
    flagged.sort(key=lambda item: (not item[1], collation_key(item[0].name)))

    return [
        DisplaySubject(subject=s, label=pinned_label if pinned else s.name, pinned=pinned)
        for s, pinned in flagged
    ]


def label_for(subject: Subject, config: ExamConfig) -> str:
    if pinned_predicate_for(config.pinned_term)(subject):
        return config.pinned_label
    return subject.name


def question_cap(subject: Subject, config: ExamConfig) -> int:
    """Number of questions drawn for `subject`: pinned_count or default_count."""
    if pinned_predicate_for(config.pinned_term)(subject):
        return config.pinned_count
    return config.default_count
