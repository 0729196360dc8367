from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    DIRECTOR = "director"
    ACCOUNTANT = "accountant"


class EducationLevel(str, Enum):
    EARLY_YEARS = "Early Years"
    LOWER_PRIMARY = "Lower Primary"
    UPPER_PRIMARY = "Upper Primary"
    JUNIOR_SECONDARY = "Junior Secondary"
    OTHER = "Other"


class Collection(str, Enum):
    STUDENTS = "students"
    PAYMENTS = "payments"


DEFAULT_PAYMENT_METHOD = "KCB M-Pesa"
