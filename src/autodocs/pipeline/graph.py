from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from langgraph.graph import END, StateGraph

from autodocs.github.client import GitHubClient
from autodocs.llm.writer import DocWriter
from autodocs.pipeline.nodes import (
    FileProgress,
    build_index_node,
    collect_changes_node,
    fetch_contents_node,
    finish_node,
    generate_docs_node,
    route_after_collect,
    route_after_fetch,
)
from autodocs.pipeline.state import DocState
from autodocs.settings import Settings


def build_graph(
    *,
    github: GitHubClient,
    writer: DocWriter,
    settings: Settings,
    on_file: FileProgress | None = None,
):
    """
    Returns a compiled LangGraph runnable.
    """

    graph = StateGraph(DocState)

    graph.add_node(
        "collect_changes",
        _bind(
            collect_changes_node,
            github=github,
            extensions=settings.code_extensions,
            max_file_bytes=settings.max_file_bytes,
        ),
    )
    graph.add_node("fetch_contents", _bind(fetch_contents_node, github=github))
    graph.add_node(
        "generate_docs",
        _bind(
            generate_docs_node,
            writer=writer,
            chunk_chars=settings.doc_chunk_chars,
            on_file=on_file,
        ),
    )
    graph.add_node("build_index", build_index_node)
    graph.add_node("finish", finish_node)

    graph.set_entry_point("collect_changes")

    graph.add_conditional_edges(
        "collect_changes",
        route_after_collect,
        {"fetch_contents": "fetch_contents", "finish": "finish"},
    )
    graph.add_conditional_edges(
        "fetch_contents",
        route_after_fetch,
        {"generate_docs": "generate_docs", "finish": "finish"},
    )
    graph.add_edge("generate_docs", "build_index")
    graph.add_edge("build_index", "finish")
    graph.add_edge("finish", END)

    return graph.compile()


def _bind(
    fn: Callable[..., Awaitable[DocState]],
    **kwargs: Any,
) -> Callable[[DocState], Awaitable[DocState]]:
    async def _wrapped(state: DocState) -> DocState:
        return await fn(state, **kwargs)

    return _wrapped
