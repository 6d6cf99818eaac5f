"""
Error taxonomy for camera and microphone acquisition.

Platform adapters raise the typed MediaError subclasses below. The
lifecycle converts whatever it catches into one ErrorRecord through
to_error_record(): typed errors keep their kind, a few builtin exception
types map by class, platform error names map through from_platform_code(),
and everything else becomes UNKNOWN carrying the raw message.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from core.types import Modality

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Every failure mode surfaced to the user."""
    PERMISSION_DENIED = "permission_denied"
    DEVICE_NOT_FOUND = "device_not_found"
    DEVICE_BUSY = "device_busy"
    CONSTRAINT_UNSATISFIABLE = "constraint_unsatisfiable"
    INSECURE_CONTEXT = "insecure_context"
    UNSUPPORTED = "unsupported"
    TIMEOUT = "timeout"
    NO_SIGNAL = "no_signal"
    UNKNOWN = "unknown"

    @property
    def is_recoverable(self) -> bool:
        """Resource was fine, the user simply gave no usable input."""
        return self is ErrorKind.NO_SIGNAL


@dataclass(frozen=True)
class ErrorRecord:
    """Error attached to a lifecycle while it sits in the ERROR state."""
    kind: ErrorKind
    message: str
    hint: str = ""


# =============================================================================
# Exception hierarchy
# =============================================================================

class MediaError(Exception):
    """Base class for media failures raised by platform adapters."""
    kind = ErrorKind.UNKNOWN


class PermissionDeniedError(MediaError):
    kind = ErrorKind.PERMISSION_DENIED


class DeviceNotFoundError(MediaError):
    kind = ErrorKind.DEVICE_NOT_FOUND


class DeviceBusyError(MediaError):
    kind = ErrorKind.DEVICE_BUSY


class ConstraintUnsatisfiableError(MediaError):
    kind = ErrorKind.CONSTRAINT_UNSATISFIABLE


class InsecureContextError(MediaError):
    kind = ErrorKind.INSECURE_CONTEXT


class UnsupportedError(MediaError):
    kind = ErrorKind.UNSUPPORTED


class AcquisitionTimeoutError(MediaError):
    kind = ErrorKind.TIMEOUT


class NoSignalError(MediaError):
    kind = ErrorKind.NO_SIGNAL


_ERROR_CLASSES: Dict[ErrorKind, type] = {
    cls.kind: cls for cls in (
        MediaError, PermissionDeniedError, DeviceNotFoundError,
        DeviceBusyError, ConstraintUnsatisfiableError, InsecureContextError,
        UnsupportedError, AcquisitionTimeoutError, NoSignalError,
    )
}

# Error names reported by camera and speech platforms.
PLATFORM_ERROR_CODES: Dict[str, ErrorKind] = {
    # camera
    "NotAllowedError": ErrorKind.PERMISSION_DENIED,
    "PermissionDeniedError": ErrorKind.PERMISSION_DENIED,
    "NotFoundError": ErrorKind.DEVICE_NOT_FOUND,
    "DevicesNotFoundError": ErrorKind.DEVICE_NOT_FOUND,
    "NotReadableError": ErrorKind.DEVICE_BUSY,
    "TrackStartError": ErrorKind.DEVICE_BUSY,
    "OverconstrainedError": ErrorKind.CONSTRAINT_UNSATISFIABLE,
    "SecurityError": ErrorKind.INSECURE_CONTEXT,
    "TypeError": ErrorKind.UNSUPPORTED,
    # speech
    "not-allowed": ErrorKind.PERMISSION_DENIED,
    "permission-denied": ErrorKind.PERMISSION_DENIED,
    "service-not-allowed": ErrorKind.PERMISSION_DENIED,
    "no-speech": ErrorKind.NO_SIGNAL,
    "audio-capture": ErrorKind.DEVICE_NOT_FOUND,
    "language-not-supported": ErrorKind.CONSTRAINT_UNSATISFIABLE,
}

# Checked in order, first isinstance match wins.
_BUILTIN_KINDS: Tuple[Tuple[type, ErrorKind], ...] = (
    (PermissionError, ErrorKind.PERMISSION_DENIED),
    (FileNotFoundError, ErrorKind.DEVICE_NOT_FOUND),
    (TimeoutError, ErrorKind.TIMEOUT),
    (asyncio.TimeoutError, ErrorKind.TIMEOUT),
    (NotImplementedError, ErrorKind.UNSUPPORTED),
)


def from_platform_code(code: str, message: str = "") -> MediaError:
    """Build the typed exception for a platform error name.

    Unrecognized names (e.g. the speech engine's "network" or "aborted")
    become a plain MediaError whose message keeps the raw code.
    """
    kind = PLATFORM_ERROR_CODES.get(code, ErrorKind.UNKNOWN)
    if kind is ErrorKind.UNKNOWN:
        return MediaError(f"{code}: {message}" if message else code)
    return _ERROR_CLASSES[kind](message or code)


def error_kind_for(exc: BaseException) -> ErrorKind:
    if isinstance(exc, MediaError):
        return exc.kind
    for exc_type, kind in _BUILTIN_KINDS:
        if isinstance(exc, exc_type):
            return kind
    return ErrorKind.UNKNOWN


# =============================================================================
# User-facing remediation hints
# =============================================================================

CAMERA_HINTS: Dict[ErrorKind, str] = {
    ErrorKind.PERMISSION_DENIED: "Permission refusée. Autorise l'accès à la caméra dans les réglages de confidentialité, puis réessaie.",
    ErrorKind.DEVICE_NOT_FOUND: "Aucune caméra trouvée. Assure-toi qu'une caméra est connectée à ton appareil.",
    ErrorKind.DEVICE_BUSY: "La caméra est utilisée par une autre application. Ferme les autres applications qui utilisent la caméra.",
    ErrorKind.CONSTRAINT_UNSATISFIABLE: "Les paramètres de la caméra ne sont pas supportés. Essaie une autre caméra.",
    ErrorKind.INSECURE_CONTEXT: "Erreur de sécurité. L'accès à la caméra est bloqué dans ce contexte.",
    ErrorKind.UNSUPPORTED: "Ton système ne supporte pas l'accès à la caméra. Utilise le mode démo!",
    ErrorKind.TIMEOUT: "La caméra met trop de temps à démarrer. Réessaie!",
    ErrorKind.NO_SIGNAL: "Aucune image reçue de la caméra. Réessaie!",
    ErrorKind.UNKNOWN: "Erreur: {message}",
}

MICROPHONE_HINTS: Dict[ErrorKind, str] = {
    ErrorKind.PERMISSION_DENIED: "Permission du microphone refusée. Autorise le microphone dans les réglages, puis réessaie.",
    ErrorKind.DEVICE_NOT_FOUND: "Aucun microphone trouvé. Vérifie qu'un microphone est connecté.",
    ErrorKind.DEVICE_BUSY: "Le microphone est utilisé par une autre application.",
    ErrorKind.CONSTRAINT_UNSATISFIABLE: "La langue ou les réglages du microphone ne sont pas supportés.",
    ErrorKind.INSECURE_CONTEXT: "Erreur de sécurité. L'accès au microphone est bloqué dans ce contexte.",
    ErrorKind.UNSUPPORTED: "La reconnaissance vocale n'est pas supportée sur ce système. Tu peux écrire ton message!",
    ErrorKind.TIMEOUT: "Le microphone met trop de temps à démarrer. Réessaie!",
    ErrorKind.NO_SIGNAL: "Aucune parole détectée. Parle plus fort ou rapproche-toi du microphone!",
    ErrorKind.UNKNOWN: "Erreur: {message}. Réessaie!",
}


def hint_for(kind: ErrorKind, modality: Modality, message: str = "") -> str:
    hints = MICROPHONE_HINTS if modality is Modality.VOICE else CAMERA_HINTS
    return hints[kind].format(message=message or "inconnue")


def to_error_record(exc: BaseException, modality: Modality) -> ErrorRecord:
    """Convert any exception caught at the lifecycle boundary."""
    kind = error_kind_for(exc)
    message = str(exc) or exc.__class__.__name__
    if kind is ErrorKind.UNKNOWN:
        logger.debug("Unclassified %s failure: %r", modality.value, exc)
    return ErrorRecord(kind=kind, message=message, hint=hint_for(kind, modality, message))
