# noti/errors.py
"""Exceptions raised across the dashboard"""


class NotiError(Exception):
    """Base exception for dashboard errors"""
    pass


class ConfigurationError(NotiError):
    """Required configuration missing or invalid"""
    pass


class ValidationError(NotiError):
    """Client sent missing or malformed input"""
    pass


class AuthError(NotiError):
    """Bearer credential or login did not match"""
    pass


class UpstreamError(NotiError):
    """A collaborator (the store) failed; callers get a generic message"""
    pass


class StoreError(UpstreamError):
    """Transaction store read or write failed"""
    pass
