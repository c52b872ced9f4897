import inspect
import logging

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Libraries that are too chatty below INFO for a command-line tool
_QUIET_LOGGERS = ('peewee', 'urllib3', 'transmissionrpc', 'qbittorrentapi')


class BraceMessage(object):
    def __init__(self, fmt, args, kwargs):
        self.fmt = fmt
        self.args = args
        self.kwargs = kwargs

    def __str__(self):
        if not self.args and not self.kwargs:
            return str(self.fmt)
        return str(self.fmt).format(*self.args, **self.kwargs)


class BraceAdapter(logging.LoggerAdapter):
    """Logger adapter accepting str.format() style messages, formatted only when emitted."""

    def __init__(self, logger):
        super().__init__(logger, None)

    def log(self, level, msg, *args, **kwargs):
        if self.isEnabledFor(level):
            msg, log_kwargs = self.process(msg, kwargs)
            format_kwargs = {key: value for key, value in kwargs.items() if key not in log_kwargs}
            self.logger._log(
                level,
                BraceMessage(msg, args, format_kwargs),
                (),
                **log_kwargs,
            )

    def process(self, msg, kwargs):
        return msg, {key: kwargs[key]
                     for key in inspect.getfullargspec(self.logger._log).args[1:]
                     if key in kwargs}


def configure_logging(log_level):
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.INFO, log_level))
