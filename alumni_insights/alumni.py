import math
from typing import Any, Dict, Iterable, List, Optional

from alumni_insights.lookup import build_lookup, field_value, row_key
from alumni_insights.models import EngagementFact, Student, as_rows
from alumni_insights.sanitizer import to_text

UNKNOWN_PROGRAM = "Unknown"


def count_total_alumni(students: Iterable[Any]) -> int:
    return len(build_lookup(as_rows(Student, students), "student_key"))


def count_engaged_alumni(engagement_rows: Iterable[Any], students: Optional[Iterable[Any]] = None) -> int:
    """Distinct students with at least one engagement row.

    When `students` is given, only keys that resolve to a student count.
    """
    engaged = {row_key(fact, "student_key") for fact in as_rows(EngagementFact, engagement_rows)}
    engaged.discard(None)
    if students is not None:
        engaged &= set(build_lookup(as_rows(Student, students), "student_key"))
    return len(engaged)


def engagement_rate(engaged: int, total: int) -> int:
    """Engaged share of all alumni as a whole percentage, capped at 100."""
    if total <= 0:
        return 0
    return int(math.floor(min(100.0, engaged / total * 100) + 0.5))


def engagement_by_program(students: Iterable[Any], engagement_rows: Iterable[Any],
                          limit: int = 10) -> List[Dict[str, Any]]:
    """Engaged alumni per program (`program_name`, else `major`), largest first."""
    lookup = build_lookup(as_rows(Student, students), "student_key")
    programs: Dict[str, set] = {}
    for fact in as_rows(EngagementFact, engagement_rows):
        key = row_key(fact, "student_key")
        student = lookup.get(key)
        if student is None:
            continue
        program = student.program_name or to_text(field_value(student, "major")) or UNKNOWN_PROGRAM
        programs.setdefault(program, set()).add(key)

    results = [{"program": program, "engaged_alumni": len(keys)} for program, keys in programs.items()]
    results.sort(key=lambda r: (-r["engaged_alumni"], r["program"]))
    return results[:limit] if limit > 0 else results


def summarize_alumni_engagement(students: Iterable[Any], engagement_rows: Iterable[Any]) -> Dict[str, Any]:
    students = as_rows(Student, students)
    facts = as_rows(EngagementFact, engagement_rows)
    total = count_total_alumni(students)
    engaged = count_engaged_alumni(facts, students)
    return {
        "total_alumni": total,
        "engaged_alumni": engaged,
        "engagement_rate": engagement_rate(engaged, total),
        "total_touchpoints": len(facts),
    }
