import subprocess
import sys
import types
from pathlib import Path

import pytest

from giftguide.errors import RenderError
from giftguide.render import (
    BrowserExit,
    BrowserProcess,
    ChromeRenderer,
    LocalBrowserLocator,
    PackagedBrowserLocator,
    WeasyPrintRenderer,
    build_renderer,
)
from giftguide.settings import Settings


class StaticLocator:
    def __init__(self, path="/opt/chrome/chrome"):
        self.path = path
        self.calls = 0

    def locate(self):
        self.calls += 1
        return self.path


class FakeBrowser:
    """Pretends to be Chrome: writes the --print-to-pdf target."""

    def __init__(self, returncode=0, timed_out=False, output=b"%PDF-1.7\nfake", stderr=""):
        self.returncode = returncode
        self.timed_out = timed_out
        self.output = output
        self.stderr = stderr
        self.calls = []

    def run(self, args, cwd=None, timeout=None):
        self.calls.append({"args": list(args), "cwd": cwd, "timeout": timeout})
        target = next(a for a in args if a.startswith("--print-to-pdf="))
        self.html = Path(cwd, "guide.html").read_text(encoding="utf-8")
        if self.output is not None and self.returncode == 0 and not self.timed_out:
            Path(target.split("=", 1)[1]).write_bytes(self.output)
        return BrowserExit(None if self.timed_out else self.returncode, self.stderr, self.timed_out)


class TestChromeRenderer:
    def test_renders_pdf_and_cleans_up(self):
        browser = FakeBrowser()
        renderer = ChromeRenderer(locator=StaticLocator(), process=browser, timeout=30)

        data = renderer.render("<html><body>hi</body></html>")

        assert data == b"%PDF-1.7\nfake"
        call = browser.calls[0]
        assert call["args"][0] == "/opt/chrome/chrome"
        assert "--headless" in call["args"]
        assert call["args"][-1].startswith("file://")
        assert call["timeout"] == 30
        assert browser.html == "<html><body>hi</body></html>"
        # The session directory is removed after rendering.
        assert not Path(call["cwd"]).exists()

    def test_locator_resolved_once(self):
        locator = StaticLocator()
        renderer = ChromeRenderer(locator=locator, process=FakeBrowser())
        renderer.render("<html></html>")
        renderer.render("<html></html>")
        assert locator.calls == 1

    def test_non_zero_exit_raises(self):
        browser = FakeBrowser(returncode=1, stderr="crashed")
        with pytest.raises(RenderError, match="crashed"):
            ChromeRenderer(locator=StaticLocator(), process=browser).render("<html></html>")
        assert not Path(browser.calls[0]["cwd"]).exists()

    def test_timeout_raises(self):
        with pytest.raises(RenderError, match="timed out"):
            ChromeRenderer(locator=StaticLocator(), process=FakeBrowser(timed_out=True)).render("x")

    def test_missing_output_raises(self):
        with pytest.raises(RenderError, match="did not produce"):
            ChromeRenderer(locator=StaticLocator(), process=FakeBrowser(output=None)).render("x")

    def test_malformed_output_raises(self):
        with pytest.raises(RenderError, match="not a PDF"):
            ChromeRenderer(locator=StaticLocator(), process=FakeBrowser(output=b"<html>")).render("x")


class TestBrowserProcess:
    def test_captures_exit_code_and_stderr(self, monkeypatch, tmp_path):
        seen = {}

        def fake_run(args, **kwargs):
            seen.update(kwargs)
            return subprocess.CompletedProcess(args, 3, stdout=None, stderr=b"bad flag \xff")

        monkeypatch.setattr("giftguide.render.subprocess.run", fake_run)
        result = BrowserProcess().run(["chrome", "--headless"], cwd=tmp_path, timeout=5)

        assert result == BrowserExit(returncode=3, stderr="bad flag \ufffd")
        assert seen["stdout"] is subprocess.DEVNULL
        assert seen["cwd"] == str(tmp_path)
        assert seen["timeout"] == 5

    def test_timeout_is_reported(self, monkeypatch, tmp_path):
        def fake_run(args, **kwargs):
            raise subprocess.TimeoutExpired(args, kwargs["timeout"])

        monkeypatch.setattr("giftguide.render.subprocess.run", fake_run)
        result = BrowserProcess().run(["chrome"], cwd=tmp_path, timeout=1)
        assert result.timed_out
        assert result.returncode is None

    def test_missing_binary_raises(self, monkeypatch, tmp_path):
        def fake_run(args, **kwargs):
            raise FileNotFoundError(2, "No such file or directory")

        monkeypatch.setattr("giftguide.render.subprocess.run", fake_run)
        with pytest.raises(RenderError, match="Could not launch browser /opt/chrome"):
            BrowserProcess().run(["/opt/chrome"], cwd=tmp_path, timeout=1)


class TestLocators:
    def test_local_prefers_known_paths(self, tmp_path):
        binary = tmp_path / "chrome"
        binary.write_text("")
        locator = LocalBrowserLocator(paths=(str(tmp_path / "missing"), str(binary)), commands=())
        assert locator.locate() == str(binary)

    def test_local_falls_back_to_path(self, monkeypatch):
        monkeypatch.setattr("giftguide.render.shutil.which", lambda cmd: "/usr/bin/chromium" if cmd == "chromium" else None)
        locator = LocalBrowserLocator(paths=(), commands=("google-chrome", "chromium"))
        assert locator.locate() == "/usr/bin/chromium"

    def test_local_not_found(self, monkeypatch):
        monkeypatch.setattr("giftguide.render.shutil.which", lambda cmd: None)
        with pytest.raises(RenderError):
            LocalBrowserLocator(paths=(), commands=("chromium",)).locate()

    def test_packaged(self, tmp_path):
        binary = tmp_path / "chromium"
        binary.write_text("")
        assert PackagedBrowserLocator(str(binary)).locate() == str(binary)

    @pytest.mark.parametrize("path", [None, "/nonexistent/chromium"])
    def test_packaged_missing(self, path):
        with pytest.raises(RenderError):
            PackagedBrowserLocator(path).locate()


class TestBuildRenderer:
    def test_weasyprint(self):
        assert isinstance(build_renderer(Settings(renderer="weasyprint")), WeasyPrintRenderer)

    def test_serverless_uses_packaged_binary(self):
        renderer = build_renderer(Settings(serverless=True, chrome_path="/opt/chromium", render_timeout=20))
        assert isinstance(renderer, ChromeRenderer)
        assert isinstance(renderer.locator, PackagedBrowserLocator)
        assert renderer.timeout == 20

    def test_local_with_override_path(self):
        renderer = build_renderer(Settings(chrome_path="/custom/chrome"))
        assert isinstance(renderer.locator, LocalBrowserLocator)
        assert renderer.locator.paths[0] == "/custom/chrome"

    def test_local_default(self):
        renderer = build_renderer(Settings())
        assert isinstance(renderer.locator, LocalBrowserLocator)


def test_weasyprint_failure_becomes_render_error(monkeypatch):
    class BrokenHTML:
        def __init__(self, *args, **kwargs):
            pass

        def write_pdf(self):
            raise RuntimeError("cairo missing")

    fake = types.ModuleType("weasyprint")
    fake.HTML = BrokenHTML
    monkeypatch.setitem(sys.modules, "weasyprint", fake)
    with pytest.raises(RenderError, match="cairo missing"):
        WeasyPrintRenderer().render("<html></html>")
