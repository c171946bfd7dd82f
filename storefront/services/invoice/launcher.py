"""
Deep Link Launchers

Opening a messaging deep link is a fire-and-forget side effect. Kiosk
deployments hand it to the local browser; the API and the tests only
record it so the client can follow the URL itself.
"""

import logging
import webbrowser
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class LaunchError(Exception):
    """The deep link could not be handed to a browser."""


class DeepLinkLauncher(ABC):

    @abstractmethod
    def open(self, url: str) -> None:
        """
        Open url.

        Raises:
            LaunchError: If no handler accepted the link
        """
        pass


class RecordingLauncher(DeepLinkLauncher):
    """Keeps every opened URL; the caller forwards it to the client."""

    def __init__(self):
        self.opened: list[str] = []

    def open(self, url: str) -> None:
        self.opened.append(url)
        logger.debug(f"Deep link recorded: {url[:80]}")


class BrowserLauncher(DeepLinkLauncher):
    """Opens links in a new tab of the machine's default browser."""

    def open(self, url: str) -> None:
        try:
            opened = webbrowser.open(url, new=2)
        except webbrowser.Error as e:
            raise LaunchError(str(e)) from e
        if not opened:
            raise LaunchError("No browser accepted the link")
        logger.info("Deep link opened in browser")


def get_launcher(open_in_browser: bool) -> DeepLinkLauncher:
    if open_in_browser:
        return BrowserLauncher()
    return RecordingLauncher()
