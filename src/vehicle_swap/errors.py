"""Erreurs du moteur de placement."""

from typing import Optional


class PlacementError(Exception):
    """Erreur de base, récupérable au niveau de l'interface."""


class ImageNotReady(PlacementError):
    """Composition demandée avant le décodage des deux images."""


class NoAnchor(PlacementError):
    """Composition demandée sans point de placement."""


class CompositeInProgress(PlacementError):
    """Une composition est déjà en cours pour cette session."""


class DecodeFailure(PlacementError):
    """Le fichier uploadé n'est pas une image valide."""

    def __init__(self, message: str, filename: Optional[str] = None):
        self.filename = filename
        if filename:
            message = f"{message} ({filename})"
        super().__init__(message)


class ExternalServiceFailure(PlacementError):
    """Échec d'un service externe (extraction ou fusion)."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"[{service}] {message}")


class QuotaExceeded(ExternalServiceFailure):
    """Quota du service externe dépassé."""

    pass
