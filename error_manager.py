class Severity:
    INFO = 'info'
    WARNING = 'warning'
    ERROR = 'error'


class ErrorInfo:
    def __init__(self, severity, key, message, traceback=None):
        self.severity = severity
        self.key = key
        self.message = message
        self.traceback = traceback

    def to_dict(self):
        return dict(self.__dict__)


class ErrorManager:
    """Collects the problems of a multi-torrent operation, one entry per key (usually an info hash)."""

    GREEN = 'green'  # Everything went through
    YELLOW = 'yellow'  # Some warnings that need to be looked at
    RED = 'red'  # At least one item failed

    def __init__(self):
        self._current_errors = {}

    @property
    def status(self):
        statuses = {error.severity for error in self._current_errors.values()}
        if Severity.ERROR in statuses:
            return self.RED
        elif Severity.WARNING in statuses:
            return self.YELLOW
        return self.GREEN

    @property
    def errors(self):
        return list(self._current_errors.values())

    def count(self, severity=Severity.ERROR):
        return sum(1 for error in self._current_errors.values() if error.severity == severity)

    def add_error(self, severity, key, message, traceback=None):
        self._current_errors[key] = ErrorInfo(
            severity=severity,
            key=key,
            message=message,
            traceback=traceback
        )

    def clear_error(self, key):
        self._current_errors.pop(key, None)

    def to_dict(self):
        return {key: error.to_dict() for key, error in self._current_errors.items()}
