import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

RTF = "rtf"
HTML = "html"

_RTF_TOKEN = re.compile(
    r"\\([a-zA-Z]+)(-?\d+)? ?|\\'([0-9a-fA-F]{2})|\\(.)|([{}])|([^\\{}\r\n]+)|[\r\n]",
    re.DOTALL,
)

# Destinations whose contents are not part of the visible text.
_RTF_SKIP_DESTINATIONS = {
    "fonttbl", "colortbl", "stylesheet", "info", "pict", "object",
    "header", "footer", "headerl", "headerr", "footerl", "footerr",
    "listtable", "listoverridetable", "themedata", "colorschememapping",
    "datastore", "latentstyles", "rsidtbl", "generator", "xmlnstbl",
    "mmathPr", "expandedcolortbl", "field", "fldinst",
}

_RTF_SPECIALS = {
    "par": "\n",
    "line": "\n",
    "sect": "\n",
    "page": "\n",
    "tab": "\t",
    "cell": "\t",
    "row": "\n",
    "emdash": "\u2014",
    "endash": "\u2013",
    "bullet": "\u2022",
    "lquote": "\u2018",
    "rquote": "\u2019",
    "ldblquote": "\u201c",
    "rdblquote": "\u201d",
}


def extract_plain_text(payload: bytes, kind: str) -> Optional[str]:
    """Return the visible text of an RTF or HTML clipboard payload."""
    if not payload:
        return None
    try:
        if kind == RTF:
            return rtf_to_text(payload.decode("latin-1"))
        if kind == HTML:
            return html_to_text(payload.decode("utf-8", errors="ignore"))
    except ValueError as e:
        logger.warning(f"Could not read {kind} clipboard content: {e}")
        return None
    logger.debug(f"Unknown rich text kind: {kind}")
    return None


def rtf_to_text(rtf: str) -> str:
    if not rtf.lstrip().startswith("{\\rtf"):
        raise ValueError("not an RTF document")

    out: List[str] = []
    stack = []
    skip = False
    ignorable = False
    uc_skip = 1
    pending_skip = 0
    pending_bytes = bytearray()

    def flush_bytes() -> None:
        if pending_bytes:
            out.append(pending_bytes.decode("cp1252", errors="ignore"))
            pending_bytes.clear()

    for match in _RTF_TOKEN.finditer(rtf):
        word, arg, hex_byte, symbol, brace, text = match.groups()

        if hex_byte is None:
            flush_bytes()

        if brace == "{":
            stack.append((skip, uc_skip))
            ignorable = False
        elif brace == "}":
            if stack:
                skip, uc_skip = stack.pop()
            ignorable = False
        elif symbol is not None:
            if symbol == "*":
                ignorable = True
            elif pending_skip:
                pending_skip -= 1
            elif not skip:
                if symbol in "\\{}":
                    out.append(symbol)
                elif symbol in "\r\n":
                    out.append("\n")
                elif symbol == "~":
                    out.append("\u00a0")
                elif symbol == "_":
                    out.append("-")
        elif word is not None:
            if ignorable or word in _RTF_SKIP_DESTINATIONS:
                skip = True
                ignorable = False
            elif word == "uc" and arg is not None:
                uc_skip = int(arg)
            elif skip:
                pass
            elif word == "u" and arg is not None:
                code = int(arg)
                if code < 0:
                    code += 0x10000
                out.append(chr(code))
                pending_skip = uc_skip
            elif word in _RTF_SPECIALS:
                out.append(_RTF_SPECIALS[word])
        elif hex_byte is not None:
            if pending_skip:
                pending_skip -= 1
            elif not skip:
                pending_bytes.append(int(hex_byte, 16))
        elif text is not None:
            if pending_skip:
                consumed = min(pending_skip, len(text))
                text = text[consumed:]
                pending_skip -= consumed
            if not skip and text:
                out.append(text)

    flush_bytes()
    return "".join(out)


_HTML_HIDDEN_TAGS = ["script", "style", "head", "title", "noscript"]
_HTML_BLOCK_TAGS = ["p", "div", "li", "tr", "h1", "h2", "h3", "h4", "h5", "h6"]


def html_to_text(html: str) -> str:
    # Windows "HTML Format" prefixes the markup with a Version:/StartHTML: header.
    if html.startswith("Version:") and "<" in html:
        html = html[html.index("<"):]
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.find_all(_HTML_HIDDEN_TAGS):
        if not tag.decomposed:
            tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for tag in soup.find_all(_HTML_BLOCK_TAGS):
        tag.append("\n")

    text = soup.get_text()
    return re.sub(r"\n{3,}", "\n\n", text).strip("\n")
