"""Folding of flat heading sequences into nested sections."""

from __future__ import annotations

from .models import Block, BlockQuote, BoxBlock, Heading, ListBlock, Section
from .span import Span


def build_sections(blocks: list[Block]) -> list[Block]:
    """Fold every heading together with the blocks it owns.

    A heading of level ``L`` owns the blocks that follow it up to the next
    heading of level ``L`` or lower. Container blocks are folded recursively.

    Args:
        blocks: Blocks in source order.

    Returns:
        list[Block]: Blocks with headings replaced by `Section` blocks.

    Examples:
        # "# A", "text", "## B", "# C" becomes
        # Section(A, [text, Section(B)]), Section(C)
    """
    out: list[Block] = []
    i = 0
    while i < len(blocks):
        block = blocks[i]
        i += 1
        if not isinstance(block.kind, Heading):
            out.append(_rewrite_children(block))
            continue

        level = block.kind.level
        start = i
        while i < len(blocks):
            following = blocks[i].kind
            if isinstance(following, Heading) and following.level <= level:
                break
            i += 1
        children = build_sections(blocks[start:i])
        end = children[-1].span.end if children else block.span.end
        section = Section(level, block.kind.title, block.attrs.label, children)
        out.append(Block(Span(block.span.start, max(end, block.span.start)), section, block.attrs))
    return out


def _rewrite_children(block: Block) -> Block:
    kind = block.kind
    if isinstance(kind, ListBlock):
        for item in kind.items:
            item.blocks = build_sections(item.blocks)
    elif isinstance(kind, (BlockQuote, BoxBlock)):
        kind.blocks = build_sections(kind.blocks)
    elif isinstance(kind, Section):
        kind.children = build_sections(kind.children)
    return block
