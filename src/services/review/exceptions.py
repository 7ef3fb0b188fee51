"""Domain exceptions for the design review pipeline.

Every stage failure is one of these. The controller catches them in a single
place and turns each into one user-facing `error` event. `stage` names the
pipeline stage the user has to act on, and `error_code` is a stable identifier
for logs and tests.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from core.exceptions import DomainError


Stage = Literal["credentials", "selection", "export", "network", "publish", "internal"]
SelectionRejection = Literal["no_selection", "multiple_selection", "unsupported_kind"]


@dataclass(slots=True)
class ReviewPipelineError(DomainError):
    """Base class for review pipeline domain errors."""

    message: str
    error_code: str
    stage: Stage

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class MissingCredentialError(ReviewPipelineError):
    """A required secret was neither supplied nor found in the credential cache."""

    _LABELS = {
        "service_key": "Gemini API key",
        "publish_token": "Figma access token",
    }

    def __init__(self, missing: Sequence[str]) -> None:
        labels = [self._LABELS.get(name, name) for name in missing]
        if len(labels) == 1:
            message = f"{labels[0]} is missing. Enter it and try again."
        else:
            joined = " and ".join(labels)
            message = f"{joined} are missing. Enter them and try again."
        super().__init__(
            message=message,
            error_code="missing_credential",
            stage="credentials",
        )
        self.missing = tuple(missing)


_SELECTION_MESSAGES: dict[SelectionRejection, str] = {
    "no_selection": "Please select a frame to review.",
    "multiple_selection": "Please select only one frame.",
    "unsupported_kind": "Please select a frame, component, or instance.",
}


class InvalidSelectionError(ReviewPipelineError):
    def __init__(self, reason: SelectionRejection) -> None:
        super().__init__(
            message=_SELECTION_MESSAGES[reason],
            error_code=reason,
            stage="selection",
        )
        self.reason = reason


class ExportFailureError(ReviewPipelineError):
    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Could not export the selection as an image: {reason}",
            error_code="export_failed",
            stage="export",
        )
        self.reason = reason


class ServiceError(ReviewPipelineError):
    """Base for failures talking to the generative vision service."""


class ServiceBusyError(ServiceError):
    def __init__(self, attempts: int) -> None:
        super().__init__(
            message=(
                "The review service is still busy after "
                f"{attempts} retries. Please try again later."
            ),
            error_code="service_busy",
            stage="network",
        )
        self.attempts = attempts


class ServiceRejectedError(ServiceError):
    def __init__(self, status_code: int) -> None:
        super().__init__(
            message=f"The review service rejected the request (HTTP {status_code}).",
            error_code="service_rejected",
            stage="network",
        )
        self.status_code = status_code


class ServiceTransportError(ServiceError):
    def __init__(self, detail: str = "no response") -> None:
        super().__init__(
            message=f"Could not reach the review service ({detail}).",
            error_code="service_transport",
            stage="network",
        )


class MalformedResponseError(ServiceError):
    def __init__(self, detail: str = "no review text in response") -> None:
        super().__init__(
            message=f"The review service returned an unusable response: {detail}.",
            error_code="malformed_response",
            stage="network",
        )


class PublishError(ReviewPipelineError):
    """Posting the comment failed; `status` is the HTTP code or "transport"."""

    def __init__(self, status: int | Literal["transport"]) -> None:
        if status == "transport":
            detail = "could not reach the host API"
        else:
            detail = f"HTTP {status}"
        super().__init__(
            message=f"Could not publish the review as a comment ({detail}).",
            error_code="publish_failed",
            stage="publish",
        )
        self.status = status
