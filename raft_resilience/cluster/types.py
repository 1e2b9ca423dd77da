"""
Pydantic models for cluster error responses.

Failing cluster requests answer with a body like::

    {"error": {"code": "ENOTLEADER", "leader": "/ip4/127.0.0.1/tcp/9191"}}
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, ValidationError


class ClusterErrorCode(str, Enum):
    """Error codes a cluster node reports in failure responses."""

    NOT_LEADER = "ENOTLEADER"
    NO_MAJORITY = "ENOMAJORITY"
    OUTDATED_TERM = "EOUTDATEDTERM"
    TIMED_OUT = "ETIMEDOUT"
    CONNECTION_REFUSED = "ECONNREFUSED"


# Codes signalling the contacted node can't serve the request due to leadership.
REDIRECT_CODES = frozenset(
    {
        ClusterErrorCode.NOT_LEADER,
        ClusterErrorCode.NO_MAJORITY,
        ClusterErrorCode.OUTDATED_TERM,
    }
)


class ClusterError(BaseModel):
    """Structured error reported by a cluster node."""

    model_config = ConfigDict(extra="ignore")

    code: str | None = None
    leader: str | None = None

    @property
    def known_code(self) -> ClusterErrorCode | None:
        """Get the code as enum member, or None for unrecognized codes."""
        try:
            return ClusterErrorCode(self.code)
        except ValueError:
            return None


class ClusterErrorResponse(BaseModel):
    """Envelope of a failure response body."""

    model_config = ConfigDict(extra="ignore")

    error: ClusterError | None = None

    @classmethod
    def parse_payload(cls, payload: str) -> ClusterError:
        """
        Extract the error from a raw response body.

        Unparsable bodies yield an empty error (no code, no leader).
        """
        try:
            parsed = cls.model_validate_json(payload)
        except ValidationError:
            return ClusterError()
        return parsed.error or ClusterError()
