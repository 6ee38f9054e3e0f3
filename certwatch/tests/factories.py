"""
Factory classes for generating spreadsheet rows and report profiles.

Uses factory_boy to build decoded row values with sensible defaults;
``as_row`` lays them out positionally using a profile's column mapping, the
way a census spreadsheet export would.
"""

from datetime import date

import factory

from certwatch.core.config import ReportConfig

HOPE_VISIT_COLUMNS = {
    "patient_name": 0,
    "start_of_care": 1,
    "huv1_complete": 2,
    "huv2_complete": 3,
}

CERTIFICATION_COLUMNS = {
    "admission_date": 1,
    "notify_date": 5,
    "cdate_1": 6,
    "cdate_2": 7,
    "mr_number": 10,
    "patient_name": 11,
}

STAFF_REMINDER_COLUMNS = {
    "patient_name": 0,
    "current_period": 2,
    "notify_date": 5,
    "notify_staff": 9,
}


def as_row(values, columns):
    """Lay out ``values`` (field name -> cell) as a positional row."""
    width = max(columns.values()) + 1
    row = [None] * width
    for name, value in values.items():
        row[columns[name]] = value
    return row


def build_rows(factory_class, columns, batch=None, **kwargs):
    """Build rows with a factory; ``batch`` is a list of per-row overrides."""
    batch = batch if batch is not None else [{}]
    return [as_row(factory_class(**{**kwargs, **overrides}), columns) for overrides in batch]


class ReportConfigFactory(factory.Factory):
    """Factory for ReportConfig profiles."""

    class Meta:
        model = ReportConfig

    name = factory.Sequence(lambda n: f"report_{n}")
    recipients = ("staff@example.com",)
    columns = factory.LazyFunction(dict)
    from_email = "certwatch@example.com"


class HopeVisitRowFactory(factory.DictFactory):
    """A hospice census row for the HUV report."""

    patient_name = factory.Faker("name")
    start_of_care = date(2024, 2, 6)
    huv1_complete = False
    huv2_complete = False


class CertificationRowFactory(factory.DictFactory):
    """A certification tracking row; notify date defaults to 2024-02-21."""

    patient_name = factory.Faker("name")
    mr_number = factory.Sequence(lambda n: f"{10000 + n}")
    admission_date = date(2024, 1, 1)
    notify_date = date(2024, 2, 21)
    cdate_1 = date(2024, 1, 1)
    cdate_2 = date(2024, 3, 30)


class StaffReminderRowFactory(factory.DictFactory):
    patient_name = factory.Faker("name")
    current_period = "1/1/2024 > 3/30/2024"
    notify_date = date(2024, 2, 21)
    notify_staff = False
