# ------------------------------------------------------------
# Module: webui_proxy/surface/playwright_surface.py
# Purpose: Drive the chat web UI through a persistent Playwright browser context.
# ------------------------------------------------------------

"""Browser-backed implementation of the `Surface` protocol.

Responsibilities
----------------
- Launch a persistent Chromium profile (keeps the login) and open the chat page.
- Read visible reply segments (text + spinner flag) in one page evaluation.
- Provide the ordered text-injection techniques and the commit action.
- Reopen the page if it was closed underneath us.

Notes
-----
- DOM read failures (navigation in progress, detached nodes) degrade to empty
  reads and are logged at DEBUG; the driver's polling absorbs them.
- A missing/closed browser context raises `SurfaceError`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import urlsplit

from playwright.async_api import BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from webui_proxy.core.config import Settings
from webui_proxy.core.config import settings as _settings
from webui_proxy.core.errors import SurfaceError
from webui_proxy.surface import selectors as sel
from webui_proxy.surface.protocols import InjectionStrategy, SegmentState
from webui_proxy.utils.timing import log_timer

logger = logging.getLogger(__name__)

# Shared visibility rule + one segment by index, evaluated in the page.
_SEGMENTS_JS = """
({ rootSels, textSel, spinSels, index }) => {
  const isVisible = (el) => {
    if (!el || !el.isConnected) return false;
    const cs = getComputedStyle(el);
    if (cs.display === 'none' || cs.visibility === 'hidden' || cs.opacity === '0') return false;
    const r = el.getBoundingClientRect();
    return r.width > 2 && r.height > 2;
  };
  const all = [];
  for (const s of rootSels) document.querySelectorAll(s).forEach(n => all.push(n));
  const list = Array.from(new Set(all)).filter(isVisible);
  const describe = (el, i) => {
    const md = el.querySelector(textSel);
    const text = (md?.innerText || md?.textContent || el.innerText || el.textContent || '').trim();
    let spinning = false;
    for (const s of spinSels) {
      const n = el.querySelector(s);
      if (n && isVisible(n)) { spinning = true; break; }
    }
    const id = el.id || el.getAttribute('data-message-id') || `segment-${i}`;
    return { index: i, id, text, spinning };
  };
  if (index < 0 || index >= list.length) return { count: list.length, item: null };
  const el = list[index];
  try { el.scrollIntoView({ block: 'nearest' }); } catch (e) {}
  return { count: list.length, item: describe(el, index) };
}
"""

_COUNT_JS = """
({ rootSels }) => {
  const all = [];
  for (const s of rootSels) document.querySelectorAll(s).forEach(n => all.push(n));
  return Array.from(new Set(all)).filter(el => {
    if (!el.isConnected) return false;
    const cs = getComputedStyle(el);
    if (cs.display === 'none' || cs.visibility === 'hidden' || cs.opacity === '0') return false;
    const r = el.getBoundingClientRect();
    return r.width > 2 && r.height > 2;
  }).length;
}
"""

# Visible + enabled send control (styles are used to disable it, not only attributes).
_SEND_READY_JS = """
(sels) => {
  let n = null;
  for (const s of sels) { n = document.querySelector(s); if (n) break; }
  if (!n) return false;
  const cs = getComputedStyle(n);
  const r = n.getBoundingClientRect();
  if (cs.display === 'none' || cs.visibility === 'hidden' || cs.opacity === '0') return false;
  if (r.width < 4 || r.height < 4) return false;
  const dis = n.disabled || n.getAttribute('disabled') || n.getAttribute('aria-disabled');
  if (dis && String(dis).toLowerCase() !== 'false') return false;
  return cs.pointerEvents !== 'none';
}
"""

_FIRST_SEND_JS = """
(sels) => {
  for (const s of sels) { if (document.querySelector(s)) return s; }
  return null;
}
"""

# The last visible editor is the live one; tag it so later lookups are unambiguous.
_PICK_INPUT_JS = """
({ baseSel, attr }) => {
  const cand = Array.from(document.querySelectorAll(baseSel)).filter(el => {
    const r = el.getBoundingClientRect();
    return el.isConnected && r.width > 5 && r.height > 5;
  });
  if (!cand.length) return false;
  document.querySelectorAll(`[${attr}]`).forEach(n => n.removeAttribute(attr));
  cand[cand.length - 1].setAttribute(attr, '1');
  return true;
}
"""

_EMPTY_INPUT_JS = """
(s) => {
  const el = document.querySelector(s);
  if (!el) return;
  el.innerHTML = '';
  el.dispatchEvent(new InputEvent('input', { bubbles: true, inputType: 'deleteContentBackward' }));
}
"""

_EXEC_INSERT_JS = """
({ s, t }) => {
  const el = document.querySelector(s);
  if (!el) return false;
  el.focus();
  const range = document.createRange();
  range.selectNodeContents(el);
  range.collapse(false);
  const selection = window.getSelection();
  selection.removeAllRanges();
  selection.addRange(range);
  const ok = document.execCommand && document.execCommand('insertText', false, t);
  if (!ok) {
    const html = String(t).split(/\\r?\\n/).map(line => line || '<br>').join('<br>');
    document.execCommand('insertHTML', false, html);
  }
  el.dispatchEvent(new InputEvent('input', { bubbles: true, inputType: 'insertFromPaste' }));
  return true;
}
"""

_CLIPBOARD_WRITE_JS = """
async (t) => {
  try { await navigator.clipboard.writeText(t); return true; } catch (e) { return false; }
}
"""

_INPUT_BOX_JS = """
(el) => {
  const r = el.getBoundingClientRect();
  return { x: r.x + r.width / 2, y: r.y + Math.min(r.height / 2, 40) };
}
"""


def _normalize_input(text: str) -> str:
    return str(text).replace("\r", "").replace("\u00a0", " ")


class PlaywrightSurface:
    """Persistent-profile Chromium surface for the chat page.

    Parameters
    ----------
    user_data_dir
        Browser profile directory (holds the signed-in session).
    url
        Chat page to open.
    headless
        Run without a visible window.
    wait_ready_ms
        Pause after navigation before the page is considered usable.
    """

    def __init__(self, user_data_dir: str, url: str, *, headless: bool, wait_ready_ms: int):
        self.user_data_dir = user_data_dir
        self.url = url
        self.headless = headless
        self.wait_ready_ms = wait_ready_ms
        self._pw: Playwright | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @classmethod
    def from_settings(cls, settings: Settings = _settings) -> PlaywrightSurface:
        return cls(
            str(settings.USER_DATA_DIR),
            settings.TARGET_URL,
            headless=settings.HEADLESS,
            wait_ready_ms=settings.WAIT_READY_MS,
        )

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------
    async def start(self) -> None:
        """Launch the persistent context, grant clipboard access, open the page."""
        with log_timer("surface.start", logger, url=self.url, headless=self.headless):
            self._pw = await async_playwright().start()
            self._context = await self._pw.chromium.launch_persistent_context(
                self.user_data_dir, headless=self.headless
            )
            parts = urlsplit(self.url)
            # Clipboard access backs the paste injection technique.
            await self._context.grant_permissions(
                ["clipboard-read", "clipboard-write"],
                origin=f"{parts.scheme}://{parts.netloc}",
            )
            await self._ensure_page()

    async def close(self) -> None:
        try:
            if self._context is not None:
                await self._context.close()
        finally:
            if self._pw is not None:
                await self._pw.stop()
            self._pw = self._context = self._page = None

    async def reset(self) -> None:
        """Close the current tab and open a fresh conversation page."""
        with log_timer("surface.reset", logger, url=self.url):
            if self._page is not None and not self._page.is_closed():
                await self._page.close()
            self._page = None
            await self._ensure_page()

    def current_url(self) -> str | None:
        if self._page is None or self._page.is_closed():
            return None
        return self._page.url

    async def _ensure_page(self) -> Page:
        if self._context is None:
            raise SurfaceError("browser context not started")
        if self._page is None or self._page.is_closed():
            self._page = await self._context.new_page()
        if not self._page.url or self._page.url.startswith("about:blank"):
            try:
                await self._page.goto(self.url, wait_until="domcontentloaded")
            except PlaywrightError as e:
                logger.warning("surface.goto failed", extra={"error": str(e)[:200]})
            await self._page.wait_for_timeout(self.wait_ready_ms)
        return self._page

    async def _evaluate(self, script: str, arg: Any = None, default: Any = None) -> Any:
        page = await self._ensure_page()
        try:
            return await page.evaluate(script, arg)
        except PlaywrightError as e:
            logger.debug("surface.evaluate failed", extra={"error": str(e)[:200]})
            return default

    # -----------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------
    async def segment_count(self) -> int:
        return int(
            await self._evaluate(
                _COUNT_JS, {"rootSels": list(sel.SEGMENT_ROOT_SELECTORS)}, default=0
            )
        )

    async def read_segment(self, index: int) -> SegmentState | None:
        res = await self._evaluate(_SEGMENTS_JS, self._segments_arg(index), default=None)
        item = (res or {}).get("item")
        if not item:
            return None
        return SegmentState(text=item.get("text") or "", spinning=bool(item.get("spinning")))

    def _segments_arg(self, index: int | None) -> dict[str, Any]:
        return {
            "rootSels": list(sel.SEGMENT_ROOT_SELECTORS),
            "textSel": sel.SEGMENT_TEXT_SELECTOR,
            "spinSels": list(sel.SPINNER_SELECTORS),
            "index": index,
        }

    async def is_commit_actionable(self) -> bool:
        return bool(await self._evaluate(_SEND_READY_JS, list(sel.SEND_SELECTORS), default=False))

    async def is_generating(self) -> bool:
        page = await self._ensure_page()
        try:
            return await page.query_selector(sel.BUSY_SELECTOR) is not None
        except PlaywrightError:
            return False

    async def read_input(self) -> str:
        if not await self._pick_input():
            return ""
        page = await self._ensure_page()
        try:
            return await page.eval_on_selector(
                sel.ACTIVE_INPUT_SELECTOR, "el => el.innerText || el.textContent || ''"
            )
        except PlaywrightError:
            return ""

    async def probe(self) -> dict[str, Any]:
        page = await self._ensure_page()

        async def _has(selector: str) -> bool:
            try:
                return await page.query_selector(selector) is not None
            except PlaywrightError:
                return False

        return {
            "url": page.url,
            "input": await _has(sel.INPUT_SELECTOR),
            "send": await _has(",".join(sel.SEND_SELECTORS)),
            "send_ready": await self.is_commit_actionable(),
            "segments": await self.segment_count(),
            "segment_text": await _has(sel.SEGMENT_TEXT_SELECTOR),
            "live_region": await _has(sel.LIVE_REGION_SELECTOR),
            "generating": await self.is_generating(),
        }

    # -----------------------------------------------------------------
    # Input
    # -----------------------------------------------------------------
    async def _pick_input(self) -> bool:
        return bool(
            await self._evaluate(
                _PICK_INPUT_JS,
                {"baseSel": sel.INPUT_SELECTOR, "attr": sel.ACTIVE_INPUT_ATTR},
                default=False,
            )
        )

    async def _focus_input(self) -> None:
        # A real click on the editor is what activates the rich-text widget.
        page = await self._ensure_page()
        try:
            box = await page.eval_on_selector(sel.ACTIVE_INPUT_SELECTOR, _INPUT_BOX_JS)
        except PlaywrightError:
            box = None
        if box:
            await page.mouse.click(box["x"], box["y"])
        try:
            await page.locator(sel.ACTIVE_INPUT_SELECTOR).focus(timeout=2000)
        except PlaywrightError:
            logger.debug("surface.focus failed")

    async def clear_input(self) -> None:
        if not await self._pick_input():
            raise SurfaceError("input editor not found")
        page = await self._ensure_page()
        await self._focus_input()
        for key in ("Control+A", "Delete", "Backspace"):
            try:
                await page.keyboard.press(key)
            except PlaywrightError:
                logger.debug("surface.clear key failed", extra={"key": key})
        await self._evaluate(_EMPTY_INPUT_JS, sel.ACTIVE_INPUT_SELECTOR)

    async def _nudge(self) -> None:
        # A typed space + backspace makes the widget re-evaluate its send state.
        page = await self._ensure_page()
        try:
            await page.keyboard.type(" ")
            await page.keyboard.press("Backspace")
        except PlaywrightError:
            logger.debug("surface.nudge failed")

    async def _inject_exec_command(self, text: str) -> bool:
        ok = await self._evaluate(
            _EXEC_INSERT_JS,
            {"s": sel.ACTIVE_INPUT_SELECTOR, "t": _normalize_input(text)},
            default=False,
        )
        await self._nudge()
        return bool(ok)

    async def _inject_clipboard(self, text: str) -> bool:
        page = await self._ensure_page()
        wrote = await self._evaluate(_CLIPBOARD_WRITE_JS, _normalize_input(text), default=False)
        await page.keyboard.down("Control")
        try:
            await page.keyboard.press("KeyV")
        finally:
            await page.keyboard.up("Control")
        await self._nudge()
        return bool(wrote)

    async def _inject_keyboard(self, text: str) -> bool:
        page = await self._ensure_page()
        expected = _normalize_input(text)
        try:
            await page.keyboard.insert_text(expected)
        except PlaywrightError:
            await page.locator(sel.ACTIVE_INPUT_SELECTOR).press_sequentially(expected, delay=0)
        await self._nudge()
        return True

    def injection_strategies(self) -> Sequence[InjectionStrategy]:
        return (
            InjectionStrategy("exec_command", self._inject_exec_command),
            InjectionStrategy("clipboard_paste", self._inject_clipboard),
            InjectionStrategy("keyboard_insert", self._inject_keyboard),
        )

    # -----------------------------------------------------------------
    # Commit
    # -----------------------------------------------------------------
    async def commit(self) -> None:
        """Press Enter, then click the first send button once it is ready."""
        page = await self._ensure_page()
        try:
            await page.keyboard.press("Enter")
        except PlaywrightError as e:
            logger.debug("surface.commit enter failed", extra={"error": str(e)[:200]})
        selector = await self._evaluate(_FIRST_SEND_JS, list(sel.SEND_SELECTORS), default=None)
        if not selector:
            logger.debug("surface.commit send_button_not_found")
            return
        try:
            await page.wait_for_function(
                _SEND_READY_JS, arg=list(sel.SEND_SELECTORS), timeout=3000
            )
        except PlaywrightError:
            logger.debug("surface.commit send_not_ready")
        try:
            await page.locator(selector).first.click(timeout=2000, force=True)
        except PlaywrightError as e:
            logger.debug("surface.commit click failed", extra={"error": str(e)[:200]})
