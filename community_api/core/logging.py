"""Logging configuration and utilities."""
import logging
import sys
from typing import Any, Dict

import structlog
from structlog.stdlib import LoggerFactory

from ..config import settings


def configure_logging():
    """Configure structured logging."""

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.monitoring.log_level.upper()),
    )

    # Set third-party log levels
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


class RequestLogger:
    """Request logging utility."""

    @staticmethod
    def log_request(
        method: str,
        path: str,
        request_id: str = None,
        extra_data: Dict[str, Any] = None
    ):
        """Log incoming request."""
        logger = structlog.get_logger("api.request")
        logger.info(
            "Request started",
            method=method,
            path=path,
            request_id=request_id,
            **(extra_data or {})
        )

    @staticmethod
    def log_response(
        method: str,
        path: str,
        status_code: int,
        response_time_ms: float,
        user_id: str = None,
        request_id: str = None,
    ):
        """Log response."""
        logger = structlog.get_logger("api.response")
        logger.info(
            "Request completed",
            method=method,
            path=path,
            status_code=status_code,
            response_time_ms=response_time_ms,
            user_id=user_id,
            request_id=request_id,
        )

    @staticmethod
    def log_unhandled_error(method: str, path: str, request_id: str = None):
        """Log an exception that escaped every handler."""
        logger = structlog.get_logger("api.error")
        logger.exception(
            "Unhandled error",
            method=method,
            path=path,
            request_id=request_id,
        )


class AccountLogger:
    """Account lifecycle event logging utility."""

    @staticmethod
    def log_user_registered(user_id: str, role: str, created_by: str = None):
        logger = structlog.get_logger("business.account")
        logger.info(
            "User registered",
            event_type="user_registered",
            user_id=user_id,
            role=role,
            created_by=created_by
        )

    @staticmethod
    def log_password_changed(user_id: str, via_reset: bool = False, sessions_revoked: int = 0):
        logger = structlog.get_logger("business.account")
        logger.info(
            "Password changed",
            event_type="password_changed",
            user_id=user_id,
            via_reset=via_reset,
            sessions_revoked=sessions_revoked
        )

    @staticmethod
    def log_password_reset_requested(user_id: str):
        logger = structlog.get_logger("business.account")
        logger.info(
            "Password reset requested",
            event_type="password_reset_requested",
            user_id=user_id
        )

    @staticmethod
    def log_role_changed(user_id: str, old_role: str, new_role: str):
        logger = structlog.get_logger("business.account")
        logger.info(
            "User role changed",
            event_type="role_changed",
            user_id=user_id,
            old_role=old_role,
            new_role=new_role
        )

    @staticmethod
    def log_user_deleted(user_id: str):
        logger = structlog.get_logger("business.account")
        logger.info("User deleted", event_type="user_deleted", user_id=user_id)


class SecurityLogger:
    """Security event logging utility."""

    @staticmethod
    def log_login_attempt(
        email: str,
        success: bool,
        user_id: str = None,
        failure_reason: str = None
    ):
        """Log login attempt."""
        logger = structlog.get_logger("security.auth")
        logger.info(
            "Login attempt",
            event_type="login_attempt",
            email=email,
            success=success,
            user_id=user_id,
            failure_reason=failure_reason
        )

    @staticmethod
    def log_token_rejected(token_type: str, reason: str, user_id: str = None):
        """Log a refresh or access token that failed verification."""
        logger = structlog.get_logger("security.token")
        logger.warning(
            "Token rejected",
            event_type="token_rejected",
            token_type=token_type,
            reason=reason,
            user_id=user_id
        )

    @staticmethod
    def log_logout(user_id: str = None, revoked: bool = False):
        logger = structlog.get_logger("security.auth")
        logger.info(
            "Logout",
            event_type="logout",
            user_id=user_id,
            revoked=revoked
        )

    @staticmethod
    def log_unauthorized_access(
        path: str,
        method: str,
        user_id: str = None,
        reason: str = None
    ):
        """Log unauthorized access attempt."""
        logger = structlog.get_logger("security.access")
        logger.warning(
            "Unauthorized access attempt",
            event_type="unauthorized_access",
            path=path,
            method=method,
            user_id=user_id,
            reason=reason
        )

    @staticmethod
    def log_rate_limit_exceeded(
        ip_address: str,
        path: str,
        limit_type: str = "general"
    ):
        """Log rate limit exceeded."""
        logger = structlog.get_logger("security.rate_limit")
        logger.warning(
            "Rate limit exceeded",
            event_type="rate_limit_exceeded",
            ip_address=ip_address,
            path=path,
            limit_type=limit_type
        )
