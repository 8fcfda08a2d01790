"""Obtaining the authorization code from the person running the program."""

from __future__ import annotations

import sys
import webbrowser
from collections.abc import Callable
from typing import Protocol, TextIO
from urllib.parse import parse_qs, urlparse


class CodePrompter(Protocol):
    """Something that shows the authorization URL and returns a code."""

    def obtain_code(self, url: str) -> str:
        """Present ``url`` and return the authorization code the user got back."""
        ...


def extract_code(response: str) -> str:
    """Return the authorization code from a pasted code or redirect URL.

    Google redirects to ``http://localhost/?code=...&scope=...``; users may
    paste either that whole URL or just the code.
    """
    response = response.strip()
    if "code=" in response:
        query = urlparse(response).query or response
        codes = parse_qs(query).get("code")
        if codes:
            return codes[0]
    return response


class ConsolePrompter:
    """Prints the URL to the terminal and reads one line of input.

    Blocks until the user enters something; there is no timeout.
    """

    def __init__(
        self,
        open_browser: bool = False,
        input_func: Callable[[str], str] | None = None,
        output: TextIO | None = None,
    ):
        self.open_browser = open_browser
        self._input = input_func or input
        self._output = output

    def obtain_code(self, url: str) -> str:
        out = self._output or sys.stdout
        print("Authorize this app by visiting this URL:", file=out)
        print(url, file=out)

        if self.open_browser:
            webbrowser.open(url)

        return extract_code(self._input("Enter the code from that page here: "))
