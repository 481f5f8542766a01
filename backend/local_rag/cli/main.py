"""CLI entrypoint for Local RAG."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import requests
import typer

app = typer.Typer(name="lrag", help="Local RAG command-line interface")
collections_app = typer.Typer(name="collections", help="Inspect and remove collections")
app.add_typer(collections_app, name="collections")

DEFAULT_HOST = "http://127.0.0.1:5180"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("LRAG_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    try:
        resp = requests.request(method, url, timeout=300, **kwargs)
    except requests.ConnectionError as exc:
        typer.echo(f"Cannot reach {base}: {exc}", err=True)
        raise typer.Exit(code=1)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _password_option(encrypted: bool, password: Optional[str]) -> Optional[str]:
    if encrypted and not password:
        return typer.prompt("Password", hide_input=True)
    return password


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(5180, "--port", help="Port to listen on"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("local_rag.app:app", host=host, port=port)


@app.command()
def ingest(
    collection: str = typer.Argument(..., help="Collection to ingest into"),
    path: Path = typer.Argument(..., help="Document to ingest"),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", help="Graphemes per chunk"),
    overlap: Optional[int] = typer.Option(None, "--overlap", help="Graphemes shared by neighbouring chunks"),
    model: Optional[str] = typer.Option(None, "--model", help="Embedding model override"),
    encrypt: bool = typer.Option(False, "--encrypt", help="Encrypt chunk text at rest"),
    password: Optional[str] = typer.Option(None, "--password", help="Encryption password"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Extract, chunk, embed and store a document."""
    body: dict[str, object] = {
        "collection_id": collection,
        "path": str(path.expanduser().resolve()),
        "encrypt": encrypt,
    }
    if chunk_size is not None:
        body["chunk_size"] = chunk_size
    if overlap is not None:
        body["overlap"] = overlap
    if model:
        body["embedding_model"] = model
    secret = _password_option(encrypt, password)
    if secret:
        body["password"] = secret
    resp = _request("POST", "/ingest", host=host, json=body)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def query(
    collection: str = typer.Argument(..., help="Collection to search"),
    q: str = typer.Argument(..., help="Query text"),
    k: Optional[int] = typer.Option(None, "--k", help="Number of chunks to return"),
    context: bool = typer.Option(False, "--context", help="Print the assembled context block"),
    encrypted: bool = typer.Option(False, "--encrypted", help="Collection text is encrypted"),
    password: Optional[str] = typer.Option(None, "--password", help="Decryption password"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Search a collection."""
    payload: dict[str, object] = {"query": q, "encrypted": encrypted}
    if k is not None:
        payload["limit"] = k
    secret = _password_option(encrypted, password)
    if secret:
        payload["password"] = secret
    endpoint = "context" if context else "search"
    resp = _request("POST", f"/collections/{collection}/{endpoint}", host=host, json=payload)
    if context:
        typer.echo(resp.json()["context"])
    else:
        typer.echo(json.dumps(resp.json(), indent=2))


@collections_app.command("list")
def list_collections(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List collections."""
    resp = _request("GET", "/collections", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@collections_app.command("stats")
def collection_stats(
    collection: str = typer.Argument(..., help="Collection identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show chunk count and size of a collection."""
    resp = _request("GET", f"/collections/{collection}/stats", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@collections_app.command("delete")
def delete_collection(
    collection: str = typer.Argument(..., help="Collection identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Delete a collection and all of its chunks."""
    resp = _request("DELETE", f"/collections/{collection}", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@collections_app.command("clear")
def clear_collections(
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Drop every collection."""
    if not yes:
        typer.confirm("Drop every collection?", abort=True)
    resp = _request("DELETE", "/collections", host=host, params={"confirm": "true"})
    typer.echo(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    app()
