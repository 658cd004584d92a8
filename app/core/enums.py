from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    HEADTEACHER = "HEADTEACHER"
    CLASS_TEACHER = "CLASS_TEACHER"
    SECRETARY = "SECRETARY"
    PARENT = "PARENT"


class ExamType(str, Enum):
    BOT = "BOT"
    MID = "MID"
    END = "END"


class SubjectCategory(str, Enum):
    GENERAL = "GENERAL"
    SUBSIDIARY = "SUBSIDIARY"


class DivisionType(str, Enum):
    DIVISION_1 = "DIVISION_1"
    DIVISION_2 = "DIVISION_2"
    DIVISION_3 = "DIVISION_3"
    DIVISION_4 = "DIVISION_4"
    UNGRADED = "UNGRADED"
    FAIL = "FAIL"


class AggregationMethod(str, Enum):
    POINTS = "POINTS"
    SUM = "SUM"
    AVERAGE = "AVERAGE"


class AssessmentGrade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    EXCUSED = "EXCUSED"
