"""HTML to markdown-flavoured text conversion."""

from bs4 import BeautifulSoup, Tag

_HEADING_LEVELS = {f"h{level}": level for level in range(1, 7)}
_BLOCK_TAGS = [*_HEADING_LEVELS, "p", "li", "blockquote", "pre", "dt", "dd"]
_DROPPED_TAGS = ["script", "style", "head", "nav"]


def html_to_markdown(markup: str | bytes) -> str:
    """Convert a chapter's HTML into markdown-flavoured plain text.

    Headings become ``#`` lines so the chunker can split on them, list items
    become ``- `` lines, block quotes get a ``> `` prefix and every block is
    separated by a blank line. Whitespace inside a block is collapsed except
    in ``<pre>``. Leaf ``<div>`` elements count as paragraphs, which covers
    books that never use ``<p>``.

    Args:
        markup: HTML or XHTML markup.

    Returns:
        Text with one blank line between blocks, or "" if there is none.
    """
    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup.find_all(_DROPPED_TAGS):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")

    blocks: list[str] = []
    for element in soup.find_all([*_BLOCK_TAGS, "div"]):
        if element.name == "div" and element.find([*_BLOCK_TAGS, "div"]):
            continue
        if element.find_parent(_BLOCK_TAGS):
            continue
        block = _render_block(element)
        if block:
            blocks.append(block)

    if not blocks:
        return _collapse(soup.get_text())

    return "\n\n".join(blocks)


def _render_block(element: Tag) -> str:
    if element.name == "pre":
        text = element.get_text().strip("\n")
        return f"```\n{text}\n```" if text.strip() else ""

    text = _collapse(element.get_text())
    if not text:
        return ""

    if element.name in _HEADING_LEVELS:
        return f"{'#' * _HEADING_LEVELS[element.name]} {text}"
    if element.name == "li":
        return f"- {text}"
    if element.name == "blockquote":
        return f"> {text}"
    return text


def _collapse(text: str) -> str:
    return " ".join(text.split())
