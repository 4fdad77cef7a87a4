"""
Error types raised while loading inputs, calibrating velocity and simulating.

Every failure is a ForecastError (a ValueError), grouped by what went wrong:
structure of the dependency graph, estimates, velocity, input files and run
configuration. The command line catches ForecastError, prints it and exits 1.
"""


class ForecastError(ValueError):
    """Base class for all forecasting failures."""


# ── Structural ───────────────────────────────────────────────────────────────

class StructuralError(ForecastError):
    pass


class MissingIssueIdError(StructuralError):
    def __init__(self):
        super().__init__("missing issue id")


class DuplicateIssueIdError(StructuralError):
    def __init__(self, issue):
        self.issue = issue
        super().__init__(f"duplicate issue id {issue}")


class UnknownDependencyError(StructuralError):
    def __init__(self, issue, dependency):
        self.issue = issue
        self.dependency = dependency
        super().__init__(f"dependency {dependency} not found for issue {issue}")


class CyclicDependencyError(StructuralError):
    def __init__(self, cycle=None):
        self.cycle = cycle or []
        detail = f": {' -> '.join(self.cycle)}" if self.cycle else ""
        super().__init__(f"dependency graph has a cycle{detail}")


class MissingPreviousDependencyError(StructuralError):
    def __init__(self, issue):
        self.issue = issue
        super().__init__(f"missing previous issue for implicit dependency of {issue}")


# ── Estimation ───────────────────────────────────────────────────────────────

class EstimationError(ForecastError):
    pass


class MissingEstimateError(EstimationError):
    def __init__(self, issue):
        self.issue = issue
        super().__init__(f"missing estimate for issue {issue}")


class InvalidEstimateError(EstimationError):
    def __init__(self, issue, detail=""):
        self.issue = issue
        suffix = f" ({detail})" if detail else ""
        super().__init__(f"invalid estimate values for issue {issue}{suffix}")


class UnresolvedReferenceError(EstimationError):
    def __init__(self, issue, path):
        self.issue = issue
        self.path = path
        super().__init__(f"reference estimate for issue {issue} could not be resolved from {path}")


# ── Velocity ─────────────────────────────────────────────────────────────────

class VelocityError(ForecastError):
    pass


class MissingVelocityDataError(VelocityError):
    def __init__(self):
        super().__init__("no completed issues with story point estimates and start/done dates")


class InvalidVelocityDurationError(VelocityError):
    def __init__(self, start, end):
        super().__init__(f"no team capacity between {start} and {end}")


class InvalidVelocityValueError(VelocityError):
    def __init__(self, value):
        super().__init__(f"invalid velocity value {value}")


class MissingVelocityError(VelocityError):
    def __init__(self):
        super().__init__("missing velocity for story point estimates")


# ── Input ────────────────────────────────────────────────────────────────────

class InputError(ForecastError):
    pass


class YamlParseError(InputError):
    def __init__(self, path, detail):
        self.path = path
        super().__init__(f"failed to parse yaml {path}: {detail}")


class InvalidDateError(InputError):
    def __init__(self, value, context=""):
        self.value = value
        ctx = f" ({context})" if context else ""
        super().__init__(f"invalid date{ctx}: {value!r}. Expected YYYY-MM-DD")


class InvalidStatusError(InputError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"invalid status value: {value!r}")


class InvalidWeekdayError(InputError):
    def __init__(self, path, value):
        self.path = path
        self.value = value
        super().__init__(f"invalid weekday value in {path}: {value!r}")


class InvalidDateRangeError(InputError):
    def __init__(self, path, start, end):
        self.path = path
        super().__init__(f"invalid date range in {path}: start_date {start} is after end_date {end}")


class CalendarDirectoryNotFoundError(InputError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"calendar directory not found: {path}")


class CalendarDirectoryEmptyError(InputError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"calendar directory contains no yaml files: {path}")


# ── Configuration ────────────────────────────────────────────────────────────

class ConfigurationError(ForecastError):
    pass


class InvalidIterationsError(ConfigurationError):
    def __init__(self):
        super().__init__("iterations must be greater than zero")


class InvalidIssueCountError(ConfigurationError):
    def __init__(self):
        super().__init__("number of issues must be greater than zero")


class EmptyProjectError(ConfigurationError):
    def __init__(self):
        super().__init__("project has no work packages")


class EmptyThroughputError(ConfigurationError):
    def __init__(self):
        super().__init__("throughput data is empty")


class ZeroThroughputError(ConfigurationError):
    def __init__(self):
        super().__init__("throughput data has no nonzero values")


class NoTeamCapacityError(ConfigurationError):
    def __init__(self, start, end):
        super().__init__(f"team calendar has no capacity between {start} and {end}")


# ── Output ───────────────────────────────────────────────────────────────────

class MissingWorkPackageResultsError(ForecastError):
    def __init__(self, issue=None):
        self.issue = issue
        if issue is None:
            super().__init__("missing work package results")
        else:
            super().__init__(f"missing work package result for {issue}")
