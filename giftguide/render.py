"""
HTML to PDF rendering.

Two renderers share the `Renderer` protocol:
- ChromeRenderer drives a headless Chrome/Chromium binary with
  `--print-to-pdf`; the binary comes from a BrowserLocator chosen once at
  startup (local install probing vs. a packaged serverless binary).
- WeasyPrintRenderer renders in-process and needs no browser.

Both produce a Letter-sized document with zero margins and background
printing, and raise RenderError instead of returning a broken artifact.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .errors import RenderError
from .settings import Settings

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"

# Letter at 96 DPI.
VIEWPORT = (816, 1056)

LOCAL_BROWSER_PATHS = (
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
)
LOCAL_BROWSER_COMMANDS = (
    "google-chrome",
    "google-chrome-stable",
    "chromium",
    "chromium-browser",
    "chrome",
)


class Renderer(Protocol):
    def render(self, html: str) -> bytes:
        ...


class BrowserLocator(Protocol):
    def locate(self) -> str:
        ...


@dataclass(frozen=True)
class BrowserExit:
    returncode: Optional[int]
    stderr: str
    timed_out: bool = False


class BrowserProcess:
    """Launches the browser and waits for it; Chrome's stdout is discarded."""

    def run(self, args: Sequence[str], cwd: Path, timeout: float) -> BrowserExit:
        try:
            proc = subprocess.run(
                list(args),
                cwd=str(cwd),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return BrowserExit(returncode=None, stderr="", timed_out=True)
        except OSError as exc:
            raise RenderError(f"Could not launch browser {args[0]}: {exc}") from exc
        return BrowserExit(
            returncode=proc.returncode,
            stderr=proc.stderr.decode("utf-8", "replace"),
        )


class LocalBrowserLocator:
    """
    Finds a Chrome/Chromium install on a developer machine.

    Well-known install locations are checked first, then the PATH.
    """

    def __init__(
        self,
        paths: Sequence[str] = LOCAL_BROWSER_PATHS,
        commands: Sequence[str] = LOCAL_BROWSER_COMMANDS,
    ) -> None:
        local_app_data = os.environ.get("LOCALAPPDATA")
        extra = []
        if local_app_data:
            extra.append(str(Path(local_app_data) / "Google" / "Chrome" / "Application" / "chrome.exe"))
        self.paths = tuple(paths) + tuple(extra)
        self.commands = tuple(commands)

    def locate(self) -> str:
        for candidate in self.paths:
            if Path(candidate).is_file():
                logger.info("Using local Chrome: %s", candidate)
                return candidate
        for command in self.commands:
            found = shutil.which(command)
            if found:
                logger.info("Using Chrome from PATH: %s", found)
                return found
        raise RenderError("No local Chrome or Chromium installation found")


class PackagedBrowserLocator:
    """Returns the browser binary bundled with a serverless deployment."""

    def __init__(self, path: Optional[str]) -> None:
        self.path = path

    def locate(self) -> str:
        if not self.path:
            raise RenderError("GIFTGUIDE_CHROME_PATH must point to the packaged browser binary")
        if not Path(self.path).is_file():
            raise RenderError(f"Packaged browser binary not found: {self.path}")
        logger.info("Using packaged Chromium: %s", self.path)
        return self.path


class ChromeRenderer:
    def __init__(
        self,
        locator: BrowserLocator,
        process: Optional[BrowserProcess] = None,
        timeout: float = 60.0,
    ) -> None:
        self.locator = locator
        self.process = process or BrowserProcess()
        self.timeout = timeout
        self._executable: Optional[str] = None

    @property
    def executable(self) -> str:
        if self._executable is None:
            self._executable = self.locator.locate()
        return self._executable

    def command(self, html_path: Path, pdf_path: Path) -> List[str]:
        return [
            self.executable,
            "--headless",
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-gpu",
            f"--window-size={VIEWPORT[0]},{VIEWPORT[1]}",
            "--no-pdf-header-footer",
            f"--print-to-pdf={pdf_path}",
            html_path.as_uri(),
        ]

    def render(self, html: str) -> bytes:
        # The temporary directory is the rendering session; it is removed
        # on every exit path.
        with tempfile.TemporaryDirectory(prefix="giftguide-") as tmp:
            workdir = Path(tmp)
            html_path = workdir / "guide.html"
            pdf_path = workdir / "guide.pdf"
            html_path.write_text(html, encoding="utf-8")

            logger.info("Launching headless browser")
            result = self.process.run(self.command(html_path, pdf_path), cwd=workdir, timeout=self.timeout)
            if result.timed_out:
                raise RenderError(f"Browser timed out after {self.timeout}s")
            if result.returncode != 0:
                raise RenderError(
                    f"Browser exited with {result.returncode}: {_excerpt(result.stderr)}"
                )
            if not pdf_path.is_file():
                raise RenderError("Browser did not produce a PDF")

            data = pdf_path.read_bytes()

        return _checked_pdf(data)


class WeasyPrintRenderer:
    def __init__(self, base_url: Optional[str] = None) -> None:
        self.base_url = base_url

    def render(self, html: str) -> bytes:
        from weasyprint import HTML

        logger.info("Rendering PDF with WeasyPrint")
        try:
            data = HTML(string=html, base_url=self.base_url).write_pdf()
        except Exception as exc:
            raise RenderError(f"WeasyPrint failed: {exc}") from exc
        return _checked_pdf(data or b"")


def build_renderer(settings: Settings) -> Renderer:
    """
    Pick the renderer for this process from configuration.

    Called once at startup; the pipeline only ever sees the Renderer.
    """
    if settings.renderer == "weasyprint":
        return WeasyPrintRenderer()

    if settings.serverless:
        locator: BrowserLocator = PackagedBrowserLocator(settings.chrome_path)
    elif settings.chrome_path:
        locator = LocalBrowserLocator(paths=(settings.chrome_path,) + LOCAL_BROWSER_PATHS)
    else:
        locator = LocalBrowserLocator()
    return ChromeRenderer(locator=locator, timeout=settings.render_timeout)


def _checked_pdf(data: bytes) -> bytes:
    if not data.startswith(PDF_MAGIC):
        raise RenderError("Renderer output is not a PDF document")
    logger.info("PDF generated successfully (%d bytes)", len(data))
    return data


def _excerpt(text: str, limit: int = 500) -> str:
    text = (text or "").strip()
    return text if len(text) <= limit else text[-limit:]
