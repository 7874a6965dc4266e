class EpiError(Exception):
    """Base class for errors raised by the epidemiology core"""


class InvalidQueryError(EpiError, ValueError):
    """A query parameter is outside what the engine accepts (client error)"""


class SummaryError(EpiError):
    """Unexpected fault while computing a weekly summary (server error)"""
