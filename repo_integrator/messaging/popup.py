"""Popup browser contexts for the OAuth handshake."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
import logging
import webbrowser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PopupGeometry:
    """Size and position of a popup window."""
    width: int
    height: int
    left: int = 0
    top: int = 0

    @classmethod
    def centered(
        cls,
        width: int,
        height: int,
        screen_width: int = 1920,
        screen_height: int = 1080,
    ) -> "PopupGeometry":
        """Geometry centered on a screen of the given size."""
        return cls(
            width=width,
            height=height,
            left=max(0, (screen_width - width) // 2),
            top=max(0, (screen_height - height) // 2),
        )

    def features(self) -> str:
        """Window feature string (width=...,height=...,left=...,top=...)."""
        return f"width={self.width},height={self.height},left={self.left},top={self.top}"


class PopupHandle(ABC):
    """Handle to an opened popup."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the popup is known to be closed."""
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class PopupLauncher(ABC):
    """Opens popups."""

    @abstractmethod
    def open(self, url: str, geometry: PopupGeometry) -> Optional[PopupHandle]:
        """Open a popup at url, or return None if it was blocked."""
        pass


class BrowserPopup(PopupHandle):
    """Popup opened in the system browser.

    The system browser does not report when the user closes the window, so
    this handle only becomes closed when the client closes it.
    """

    def __init__(self, url: str):
        self.url = url
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True


class BrowserPopupLauncher(PopupLauncher):
    """Opens the authorization page in the system web browser."""

    def open(self, url: str, geometry: PopupGeometry) -> Optional[PopupHandle]:
        try:
            opened = webbrowser.open(url, new=1, autoraise=True)
        except webbrowser.Error as e:
            logger.warning(f"Could not open browser for OAuth: {e}")
            return None
        if not opened:
            logger.warning("No browser available to open OAuth popup")
            return None
        logger.info(f"Opened OAuth popup ({geometry.features()})")
        return BrowserPopup(url)
