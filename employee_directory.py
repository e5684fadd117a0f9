"""Read-only employee lookup used by the policy evaluator and the fallback prompt."""

from typing import Dict, Iterable, List, Optional

from models import Employee, TrainingRecord

DEFAULT_EMPLOYEES: List[Employee] = [
    Employee(
        employee_id="AC78923",
        name="Jean Tremblay",
        station="YYZ",
        workgroup="Ramp Services",
        bilingual=True,
        skills=("Baggage", "Safety"),
        shifts=("06:00-14:00",),
        contact="555-0123",
        sick_days_remaining=7,
        ot_hours_this_week=11,
        trainings=(TrainingRecord(course="Security Refresher", date="Dec 22", time="10:00 AM"),),
    ),
    Employee(
        employee_id="AC45678",
        name="Sarah Liu",
        station="YVR",
        workgroup="Ramp Services",
        bilingual=False,
        skills=("Customer Service",),
        shifts=("08:00-16:00",),
        contact="555-0124",
        sick_days_remaining=3,
        ot_hours_this_week=12,
        trainings=(TrainingRecord(course="Safety Training", date="Dec 23", time="02:00 PM"),),
    ),
    Employee(
        employee_id="AC90123",
        name="Pierre Martin",
        station="YUL",
        workgroup="Gate Ops",
        bilingual=True,
        skills=("Ticketing",),
        shifts=("14:00-22:00",),
        contact="555-9999",
        sick_days_remaining=10,
        ot_hours_this_week=0,
        trainings=(TrainingRecord(course="Security Refresher", date="Dec 22", time="10:00 AM"),),
    ),
]


class EmployeeDirectory:
    """Immutable roster keyed by employee identifier."""

    def __init__(self, employees: Optional[Iterable[Employee]] = None):
        roster = DEFAULT_EMPLOYEES if employees is None else employees
        self._employees: Dict[str, Employee] = {e.employee_id.upper(): e for e in roster}

    def get(self, employee_id: Optional[str]) -> Optional[Employee]:
        if not employee_id:
            return None
        return self._employees.get(employee_id.strip().upper())

    def all(self) -> List[Employee]:
        return list(self._employees.values())

    def describe_compact(self) -> str:
        """One-line roster for the fallback system context, e.g. ``AC78923:Jean Tremblay,OT=11,Sick=7``."""
        return "|".join(
            f"{e.employee_id}:{e.name},OT={e.ot_hours_this_week},Sick={e.sick_days_remaining}"
            for e in self._employees.values()
        )

    def __contains__(self, employee_id: str) -> bool:
        return self.get(employee_id) is not None

    def __len__(self) -> int:
        return len(self._employees)
