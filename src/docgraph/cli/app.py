import json
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from docgraph.core.config import DocGraphConfig
from docgraph.core.exceptions import DocGraphError
from docgraph.core.graph import DocGraph
from docgraph.core.logging import configure_logging, console
from docgraph.infra.formats.registry import FORMATS

app = typer.Typer(name="docgraph", help="Selector-queryable graphs over JSON documents.")


def _graph(root: Optional[Path]) -> DocGraph:
    config = DocGraphConfig.load(root)
    if config.store.backend == "memory":
        # Commands run in separate processes; only a file-backed store persists between them.
        config.store.backend = "duckdb"
    return DocGraph.from_config(config)


RootOption = typer.Option(None, "--root", help="Directory holding .docgraph.toml (defaults to the working directory).")


@app.callback()
def main(log_level: str = typer.Option("WARNING", "--log-level", help="Logging level.")):
    configure_logging(log_level)


@app.command()
def upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON, CSV, TSV or XML file to upload."),
    mime: Optional[str] = typer.Option(None, "--mime", help="Override the detected mime type."),
    root: Optional[Path] = RootOption,
):
    """
    Upload a file as a standardized document.
    """
    graph = _graph(root)
    try:
        tree = graph.upload_string(path.name, mime, path.read_text(encoding="utf-8"))
    except DocGraphError as exc:
        console.print(f"[bold red]Upload failed:[/] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"✅ Stored [bold cyan]{tree.doc_id}[/] at revision {tree.rev}")


@app.command()
def docs(root: Optional[Path] = RootOption):
    """
    List stored documents.
    """
    graph = _graph(root)
    table = Table(title="Documents")
    table.add_column("Id", style="cyan")
    table.add_column("Revision")
    table.add_column("Classes", justify="right")
    for tree in graph.query_docs():
        classes = [key for key in tree.raw.get("classes", {}) if not key.startswith(("_", "$"))]
        table.add_row(tree.doc_id, tree.rev or "-", str(len(classes)))
    console.print(table)


@app.command()
def show(doc_id: str = typer.Argument(..., help="Document id."), root: Optional[Path] = RootOption):
    """
    Print a document as JSON.
    """
    graph = _graph(root)
    try:
        tree = graph.get_doc(doc_id, init=False)
    except DocGraphError as exc:
        console.print(f"[bold red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    console.print_json(json.dumps(tree.raw, ensure_ascii=False, default=str))


@app.command()
def select(selector: str = typer.Argument(..., help="Selector, e.g. '@{\"_id\":\"application/json;f.json\"}$.contents[*]'."),
           root: Optional[Path] = RootOption):
    """
    List the items a selector matches.
    """
    graph = _graph(root)
    try:
        items = graph.select_all(selector).items()
    except DocGraphError as exc:
        console.print(f"[bold red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    table = Table(title=selector)
    table.add_column("Type", style="magenta")
    table.add_column("Selector", style="cyan")
    table.add_column("Value")
    for item in items:
        table.add_row(item.type_name, item.unique_selector, item.string_value()[:80])
    console.print(table)
    console.print(f"{len(items)} item(s)")


@app.command()
def schema(selector: str = typer.Argument("@{}$.contents..*", help="Selector choosing the items to summarize."),
           root: Optional[Path] = RootOption):
    """
    Count the classes of the selected nodes, edges and other items.
    """
    graph = _graph(root)
    try:
        result = graph.select_all(selector).flat_graph_schema()
    except DocGraphError as exc:
        console.print(f"[bold red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    table = Table(title="Classes")
    table.add_column("Class", style="cyan")
    table.add_column("Kind")
    table.add_column("Items", justify="right")
    for kind, counts in (("node", result.node_classes), ("edge", result.edge_classes), ("set", result.set_classes)):
        for name, count in sorted(counts.items()):
            table.add_row(name, kind, str(count))
    console.print(table)
    if result.edge_sets:
        edges = Table(title="Edge signatures")
        edges.add_column("Edge classes", style="cyan")
        edges.add_column("Sources")
        edges.add_column("Targets")
        edges.add_column("Undirected")
        edges.add_column("Edges", justify="right")
        for signature in result.edge_sets:
            edges.add_row(
                ", ".join(signature.edge_classes),
                ", ".join(signature.source_classes),
                ", ".join(signature.target_classes),
                ", ".join(signature.undirected_classes),
                str(signature.count),
            )
        console.print(edges)


@app.command("export")
def export_doc(
    doc_id: str = typer.Argument(..., help="Document id."),
    fmt: str = typer.Option("d3json", "--format", "-f", help=f"One of: {', '.join(FORMATS)}."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file (defaults to <filename>.<ext>)."),
    classes: Optional[list[str]] = typer.Option(None, "--class", "-c", help="Only export these classes."),
    root: Optional[Path] = RootOption,
):
    """
    Export a document's classes with a file format.
    """
    graph = _graph(root)
    try:
        result = graph.export_doc(doc_id, fmt, include_classes=classes or None)
    except DocGraphError as exc:
        console.print(f"[bold red]Export failed:[/] {exc}")
        raise typer.Exit(code=1) from exc
    filename = doc_id.partition(";")[2] or "export"
    target = output or Path(f"{Path(filename).stem}.{result.extension}")
    target.write_bytes(result.data)
    console.print(f"✅ Wrote {len(result.data)} bytes of {result.type} to {target}")


@app.command("import")
def import_doc(
    doc_id: str = typer.Argument(..., help="Document id to populate (created when missing)."),
    path: Path = typer.Argument(..., exists=True, dir_okay=False),
    fmt: str = typer.Option("d3json", "--format", "-f", help=f"One of: {', '.join(FORMATS)}."),
    root: Optional[Path] = RootOption,
):
    """
    Import a graph file into a document.
    """
    graph = _graph(root)
    try:
        tree = graph.import_into(doc_id, fmt, path.read_bytes())
    except DocGraphError as exc:
        console.print(f"[bold red]Import failed:[/] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"✅ Imported {path} into [bold cyan]{tree.doc_id}[/]")


@app.command()
def delete(doc_id: str = typer.Argument(..., help="Document id."), root: Optional[Path] = RootOption):
    """
    Soft-delete a document.
    """
    graph = _graph(root)
    try:
        graph.delete_doc(doc_id)
    except DocGraphError as exc:
        console.print(f"[bold red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    console.print(f"🗑️  Deleted {doc_id}")


if __name__ == "__main__":
    app()
