from __future__ import annotations

from typing import List

from pydantic import BaseModel


class ScheduledVaccine(BaseModel):
    name: str
    full_name: str


class ScheduleStage(BaseModel):
    age: str
    age_in_months: float
    vaccines: List[ScheduledVaccine]


def _stage(age: str, months: float, *vaccines: tuple[str, str]) -> ScheduleStage:
    return ScheduleStage(
        age=age,
        age_in_months=months,
        vaccines=[ScheduledVaccine(name=name, full_name=full) for name, full in vaccines],
    )


# Standard WHO/CDC childhood schedule, shown to parents as reference only.
VACCINATION_SCHEDULE: List[ScheduleStage] = [
    _stage(
        "Birth",
        0,
        ("BCG", "Bacillus Calmette-Guérin"),
        ("Hepatitis B", "Hepatitis B (1st dose)"),
        ("OPV 0", "Oral Polio Vaccine (Birth dose)"),
    ),
    _stage(
        "6 Weeks",
        1.5,
        ("DTaP 1", "Diphtheria, Tetanus, Pertussis (1st dose)"),
        ("IPV 1", "Inactivated Polio Vaccine (1st dose)"),
        ("Hib 1", "Haemophilus influenzae type b (1st dose)"),
        ("PCV 1", "Pneumococcal Conjugate (1st dose)"),
        ("Rotavirus 1", "Rotavirus (1st dose)"),
    ),
    _stage(
        "10 Weeks",
        2.5,
        ("DTaP 2", "Diphtheria, Tetanus, Pertussis (2nd dose)"),
        ("IPV 2", "Inactivated Polio Vaccine (2nd dose)"),
        ("Hib 2", "Haemophilus influenzae type b (2nd dose)"),
        ("PCV 2", "Pneumococcal Conjugate (2nd dose)"),
        ("Rotavirus 2", "Rotavirus (2nd dose)"),
    ),
    _stage(
        "14 Weeks",
        3.5,
        ("DTaP 3", "Diphtheria, Tetanus, Pertussis (3rd dose)"),
        ("IPV 3", "Inactivated Polio Vaccine (3rd dose)"),
        ("Hib 3", "Haemophilus influenzae type b (3rd dose)"),
        ("PCV 3", "Pneumococcal Conjugate (3rd dose)"),
        ("Rotavirus 3", "Rotavirus (3rd dose)"),
    ),
    _stage(
        "6 Months",
        6,
        ("Hepatitis B 2", "Hepatitis B (2nd dose)"),
        ("Influenza", "Seasonal Flu Vaccine"),
    ),
    _stage(
        "9 Months",
        9,
        ("Measles 1", "Measles (1st dose)"),
        ("Yellow Fever", "Yellow Fever"),
    ),
    _stage(
        "12 Months",
        12,
        ("Hepatitis A 1", "Hepatitis A (1st dose)"),
        ("Varicella", "Chickenpox"),
    ),
    _stage(
        "15 Months",
        15,
        ("MMR", "Measles, Mumps, Rubella"),
        ("PCV Booster", "Pneumococcal Conjugate Booster"),
    ),
    _stage(
        "18 Months",
        18,
        ("DTaP Booster", "Diphtheria, Tetanus, Pertussis Booster"),
        ("IPV Booster", "Polio Booster"),
        ("Hepatitis A 2", "Hepatitis A (2nd dose)"),
    ),
    _stage(
        "4-6 Years",
        48,
        ("DTaP Booster", "Diphtheria, Tetanus, Pertussis Booster"),
        ("IPV Booster", "Polio Booster"),
        ("MMR Booster", "Measles, Mumps, Rubella Booster"),
    ),
]
