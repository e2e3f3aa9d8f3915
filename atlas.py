# atlas.py
"""
梦境图谱：把日记集合展开成 dream / theme / symbol 三类节点和关联边，
并统计主题、符号的出现频次。纯函数，每次渲染都从完整集合重新计算。
"""
from collections import Counter
from typing import Iterable, List, Tuple

from schemas import AtlasGraph, DreamEntry, GraphEdge, GraphNode, NodeKind

DREAM_WEIGHT = 10
THEME_WEIGHT = 16
SYMBOL_WEIGHT = 8

TOP_N = 8


def dream_node_id(entry_id: str) -> str:
    return f"dream-{entry_id}"


def rank_counts(counts: Counter, limit: int = TOP_N) -> List[Tuple[str, int]]:
    """按次数降序排列，次数相同保持首次出现的顺序，截取前 limit 个。"""
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)[:limit]


def derive_graph(entries: Iterable[DreamEntry]) -> AtlasGraph:
    nodes: List[GraphNode] = []
    edges: List[GraphEdge] = []
    # theme 与 symbol 共用一个去重空间：同名标签只保留第一次出现时的类型
    seen_labels = set()
    theme_counts: Counter = Counter()
    symbol_counts: Counter = Counter()
    analyzed_count = 0

    def link(dream_id, labels, kind, weight, counts):
        for label in labels:
            if label not in seen_labels:
                nodes.append(GraphNode(id=label, kind=kind, weight=weight))
                seen_labels.add(label)
            counts[label] += 1
            edges.append(GraphEdge(source=dream_id, target=label))

    for entry in entries:
        analysis = entry.analysis
        if analysis is None:
            continue
        analyzed_count += 1

        dream_id = dream_node_id(entry.id)
        nodes.append(GraphNode(id=dream_id, kind=NodeKind.DREAM, weight=DREAM_WEIGHT))

        link(dream_id, analysis.themes or [], NodeKind.THEME, THEME_WEIGHT, theme_counts)
        link(dream_id, analysis.symbols or [], NodeKind.SYMBOL, SYMBOL_WEIGHT, symbol_counts)

    return AtlasGraph(
        nodes=nodes,
        edges=edges,
        theme_counts=dict(theme_counts),
        symbol_counts=dict(symbol_counts),
        top_themes=rank_counts(theme_counts),
        top_symbols=rank_counts(symbol_counts),
        analyzed_count=analyzed_count,
    )
