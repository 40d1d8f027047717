"""Static and interactive renderings of the medical knowledge graph."""

import json
import logging
from pathlib import Path
from typing import Dict, List

import matplotlib.pyplot as plt
import networkx as nx
from pyvis.network import Network

from .knowledge import KnowledgeGraphStore

logger = logging.getLogger(__name__)

NODE_STYLES = {
    "drug": ("#2ecc71", "h", "hexagon"),
    "condition": ("#1f77b4", "o", "ellipse"),
    "lab_test": ("#e67e22", "s", "box"),
    "symptom": ("#9b59b6", "d", "diamond"),
    "procedure": ("#34495e", "^", "triangle"),
    "external": ("#bdc3c7", "o", "dot"),
}
EDGE_COLORS = {
    "treats": "#27ae60",
    "contraindicated": "#c0392b",
    "interacts_with": "#e67e22",
}


def build_display_graph(knowledge: KnowledgeGraphStore) -> nx.DiGraph:
    """Collapse the multigraph into one weighted edge per pair for drawing.

    Interaction targets without an entity record become ``external`` nodes.
    """

    G = nx.DiGraph()
    for entity in knowledge.entities():
        G.add_node(entity.id, label=entity.name, node_type=entity.type, description=entity.description)

    for relationship in knowledge.relationships():
        for node in (relationship.source, relationship.target):
            if node not in G:
                G.add_node(node, label=node.replace("_", " ").title(), node_type="external", description="")
        existing = G.get_edge_data(relationship.source, relationship.target)
        if existing is None or existing["weight"] < relationship.weight:
            G.add_edge(
                relationship.source,
                relationship.target,
                weight=relationship.weight,
                rel_type=relationship.type,
            )

    nx.set_node_attributes(G, dict(G.degree(weight="weight")), name="weighted_degree")
    return G


def _scale_values(values: List[float], *, base: float, spread: float) -> List[float]:
    if not values:
        return []
    max_value = max(values)
    if max_value == 0:
        return [base for _ in values]
    return [base + (value / max_value) * spread for value in values]


def _format_labels(G: nx.DiGraph, max_length: int) -> Dict[str, str]:
    formatted = {}
    for node, label in G.nodes(data="label"):
        text = str(label or node)
        formatted[node] = text if len(text) <= max_length else text[: max_length - 1] + "…"
    return formatted


def export_static_graph(G: nx.DiGraph, output_path: str, title: str = "Medical Knowledge Graph") -> bool:
    """Render ``G`` to an image file. Returns ``False`` for an empty graph."""

    if G.number_of_nodes() == 0:
        logger.warning("The graph is empty. Skipping static export.")
        return False

    fig, ax = plt.subplots(figsize=(16, 12))
    pos = nx.spring_layout(G, k=1.2, seed=42, weight="weight")
    weighted_degree = nx.get_node_attributes(G, "weighted_degree")

    for node_type, (color, marker, _) in NODE_STYLES.items():
        nodes = [node for node, kind in G.nodes(data="node_type") if kind == node_type]
        if not nodes:
            continue
        nx.draw_networkx_nodes(
            G,
            pos,
            nodelist=nodes,
            node_size=_scale_values([weighted_degree.get(node, 0) for node in nodes], base=900, spread=1800),
            node_color=color,
            node_shape=marker,
            alpha=0.85,
            label=node_type.replace("_", " ").title(),
            ax=ax,
        )

    edges = list(G.edges(data=True))
    if edges:
        nx.draw_networkx_edges(
            G,
            pos,
            edgelist=[(source, target) for source, target, _ in edges],
            width=[1.0 + 4.0 * data["weight"] for _, _, data in edges],
            edge_color=[EDGE_COLORS.get(data["rel_type"], "#7f8c8d") for _, _, data in edges],
            alpha=0.6,
            arrows=True,
            ax=ax,
        )

    labels = _format_labels(G, max_length=28)
    for node, (x, y) in pos.items():
        ax.text(
            x,
            y,
            labels[node],
            fontsize=9,
            horizontalalignment="center",
            verticalalignment="center",
            bbox=dict(facecolor="white", edgecolor="none", alpha=0.8, pad=2.4),
        )

    legend_elements = [
        plt.Line2D([0], [0], color=color, label=rel_type.replace("_", " "), linewidth=3)
        for rel_type, color in EDGE_COLORS.items()
    ]
    handles, _ = ax.get_legend_handles_labels()
    ax.legend(handles=handles + legend_elements, loc="upper right", fontsize=11, markerscale=0.4)
    ax.set_title(title, fontsize=18, pad=20)
    ax.axis("off")

    fig.tight_layout()
    fig.savefig(output_path, dpi=200, bbox_inches="tight", facecolor="white", edgecolor="none")
    plt.close(fig)
    logger.info("Static graph saved to %s", output_path)
    return True


def export_interactive_graph(G: nx.DiGraph, html_path: str, title: str = "Medical Knowledge Graph") -> bool:
    """Write a PyVis HTML page with hover details per entity."""

    if G.number_of_nodes() == 0:
        logger.warning("The graph is empty. Skipping interactive export.")
        return False

    net = Network(
        height="900px",
        width="100%",
        directed=True,
        bgcolor="#ffffff",
        font_color="#2c3e50",
        cdn_resources="remote",
    )
    net.heading = title
    net.barnes_hut()

    weighted_degree = nx.get_node_attributes(G, "weighted_degree")
    for node, data in G.nodes(data=True):
        node_type = data.get("node_type", "external")
        color, _, shape = NODE_STYLES.get(node_type, NODE_STYLES["external"])
        partners = "".join(
            f"<li><strong>{G.nodes[target]['label']}</strong>: {edge['rel_type']} ({edge['weight']:.1f})</li>"
            for _, target, edge in G.out_edges(node, data=True)
        )
        tooltip = (
            f"<h4>{data.get('label', node)}</h4>"
            f"<p><b>Type:</b> {node_type.replace('_', ' ').title()}</p>"
            f"<p>{data.get('description') or ''}</p>"
            f"<ul>{partners or '<li>No outgoing relationships</li>'}</ul>"
        )
        net.add_node(
            node,
            label=data.get("label", node),
            title=tooltip,
            shape=shape,
            color=color,
            value=1 + weighted_degree.get(node, 0),
        )

    for source, target, data in G.edges(data=True):
        net.add_edge(
            source,
            target,
            value=data["weight"],
            title=f"{data['rel_type']} ({data['weight']:.1f})",
            color=EDGE_COLORS.get(data["rel_type"], "#7f8c8d"),
        )

    net.set_options(
        json.dumps(
            {
                "nodes": {"font": {"size": 16}, "shadow": True},
                "edges": {"smooth": {"type": "dynamic"}, "color": {"inherit": False}},
                "interaction": {"hover": True, "multiselect": True, "tooltipDelay": 120},
                "physics": {"barnesHut": {"springLength": 180, "avoidOverlap": 0.25}},
            }
        )
    )
    net.save_graph(str(Path(html_path)))
    logger.info("Interactive graph saved to %s", html_path)
    return True

