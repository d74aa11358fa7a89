"""
Download popular STL models from the Printables catalog.

Each model gets its own folder under the downloads root containing its STL
file(s), converted to ASCII when they arrive as binary, plus a
metadata.json with the title and description used as the generation prompt.
"""

import os
import re
import json
import uuid
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests

from stl_bench.config import Config
from stl_bench.mesh_io import FormatError, binary_stl_to_ascii, is_binary_stl

log = logging.getLogger(__name__)

BASE_URL = "https://www.printables.com"
API_URL = "https://api.printables.com/graphql/"
FILES_ROOT = "https://files.printables.com"
CLIENT_UID = str(uuid.uuid4())
REQUEST_TIMEOUT = 60  # seconds

USER_AGENT = "Mozilla/5.0 (compatible; stl-bench/1.0)"

PREVIEW_DIR_RE = re.compile(r"(?:^|/)(media/prints/[0-9]+/stls/[^/]+/)")

# Root field / id type combinations the API has answered to over time
_LOOKUP_ATTEMPTS = [
    ("print", "ID"),
    ("print", "Int"),
    ("model", "ID"),
    ("model", "Int"),
    ("printable", "ID"),
    ("printable", "Int"),
]


class GraphQLError(RuntimeError):
    pass


# ══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════════════════════

def parse_model_id_from_url(model_url: str) -> Optional[str]:
    """Extract the numeric id from a URL like .../model/12345-some-slug."""
    try:
        path = urlparse(model_url).path
    except ValueError:
        return None
    parts = [p for p in path.split("/") if p]
    if not parts:
        return None
    first = parts[-1].split("-")[0]
    return first if first.isdigit() else None


def sanitize_filename(name: str) -> str:
    name = re.sub(r"[\x00-\x1f]", " ", name)
    name = re.sub(r'[\\/:*?"<>|]', "-", name)
    return re.sub(r"\s+", " ", name).strip()


def stls_to_model_files(stls: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """
    Turn the API's stl entries into downloadable file records.

    Entries that are not .stl or whose preview path does not reveal the
    storage directory are skipped.
    """
    files = []
    for s in stls or []:
        name = str(s.get("name") or "").strip()
        if not name.lower().endswith(".stl"):
            continue
        match = PREVIEW_DIR_RE.search(str(s.get("filePreviewPath") or ""))
        if not match:
            log.debug(f"    preview path miss for '{name}'")
            continue
        base_rel = match.group(1).lstrip("/")
        files.append({
            "filename": sanitize_filename(name),
            "url": f"{FILES_ROOT}/{base_rel}{name}",
            "title": re.sub(r"\.stl$", "", name, flags=re.IGNORECASE),
            "description": s.get("note") or None,
        })
    return files


# ══════════════════════════════════════════════════════════════════════════════
# GRAPHQL CLIENT
# ══════════════════════════════════════════════════════════════════════════════

def graphql_request(
    session: requests.Session,
    query: str,
    variables: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    response = session.post(
        API_URL,
        json={"query": query, "variables": variables},
        headers={
            "content-type": "application/json",
            "accept": "application/graphql-response+json, application/graphql+json, application/json",
            "accept-language": "en",
            "graphql-client-version": "v2.2.2",
            "client-uid": CLIENT_UID,
            "origin": BASE_URL,
            "dnt": "1",
            "user-agent": USER_AGENT,
            **(headers or {}),
        },
        timeout=REQUEST_TIMEOUT,
    )
    if response.status_code != 200:
        raise GraphQLError(f"GraphQL request failed: HTTP {response.status_code}")
    body = response.json()
    errors = body.get("errors") or []
    if errors:
        raise GraphQLError(f"GraphQL errors: {json.dumps(errors)}")
    return body.get("data") or {}


def fetch_popular_models(session: requests.Session, limit: int) -> List[str]:
    """URLs of the most-made models, best first."""
    query = (
        "query ModelList($limit: Int!, $cursor: String, $ordering: String) { "
        "models: morePrints(limit: $limit, cursor: $cursor, ordering: $ordering) "
        "{ cursor items { id slug name } } }"
    )
    data = graphql_request(session, query, {"limit": limit, "cursor": None, "ordering": "-makes_count"})
    items = (data.get("models") or {}).get("items") or []
    return [f"{BASE_URL}/model/{it['id']}-{it['slug']}" for it in items]


def _lookup(session, model_id, referer, build_query, extract):
    headers = {"referer": referer} if referer else None
    for root_field, id_kind in _LOOKUP_ATTEMPTS:
        query = build_query(root_field, id_kind)
        variables = {"id": int(model_id) if id_kind == "Int" else model_id}
        try:
            data = graphql_request(session, query, variables, headers)
        except (GraphQLError, requests.exceptions.RequestException, ValueError) as e:
            log.debug(f"    lookup {root_field}/{id_kind} failed: {e}")
            continue
        result = extract(data.get("model"))
        if result:
            return result
    return None


def fetch_model_detail(session: requests.Session, model_id: str, referer: Optional[str] = None) -> Optional[Dict[str, str]]:
    def build(root_field, id_kind):
        return (f"query ModelDetail_{root_field}_{id_kind}($id: {id_kind}!) "
                f"{{ model: {root_field}(id: $id) {{ name description summary }} }}")

    def extract(model):
        if not model:
            return None
        return {
            "title": str(model.get("name") or ""),
            "description": str(model.get("description") or ""),
            "summary": str(model.get("summary") or ""),
        }

    return _lookup(session, model_id, referer, build, extract)


def fetch_model_files(session: requests.Session, model_id: str, referer: Optional[str] = None) -> List[Dict[str, Any]]:
    def build(root_field, id_kind):
        return (f"query ModelFiles_{root_field}_{id_kind}($id: {id_kind}!) "
                f"{{ model: {root_field}(id: $id) {{ id filesType stls "
                f"{{ id name folder note fileSize filePreviewPath order }} }} }}")

    def extract(model):
        return stls_to_model_files((model or {}).get("stls"))

    return _lookup(session, model_id, referer, build, extract) or []


# ══════════════════════════════════════════════════════════════════════════════
# DOWNLOAD
# ══════════════════════════════════════════════════════════════════════════════

def download_to_file(session: requests.Session, url: str, dest: str):
    response = session.get(url, headers={"user-agent": USER_AGENT}, timeout=REQUEST_TIMEOUT)
    response.raise_for_status()
    with open(dest, "wb") as f:
        f.write(response.content)


def ensure_ascii_stl(path: str, solid_name: str, precision: int) -> bool:
    """Rewrite a binary STL file as ASCII in place. Returns True if converted."""
    with open(path, "rb") as f:
        data = f.read()
    if not is_binary_stl(data):
        return False
    ascii_text = binary_stl_to_ascii(data, solid_name, precision)
    with open(path, "w") as f:
        f.write(ascii_text)
    return True


def _download_model(session: requests.Session, model_url: str, index: int, config: Config) -> Dict[str, Any]:
    model_id = parse_model_id_from_url(model_url)
    details = fetch_model_detail(session, model_id, model_url) if model_id else None
    if details is None:
        raise GraphQLError("Missing model details from GraphQL")
    log.info(f"  Title: {details['title']}")

    folder = sanitize_filename(details["title"] or model_url.rstrip("/").split("/")[-1] or f"model-{index + 1}")
    model_dir = os.path.join(config.downloads_dir, folder)
    os.makedirs(model_dir, exist_ok=True)

    files = fetch_model_files(session, model_id, model_url)
    log.info(f"  Files from GraphQL: {len(files)}")
    if config.max_files_per_model != -1:
        files = files[:max(0, config.max_files_per_model)]

    downloaded = []
    for f in files:
        dest = os.path.join(model_dir, f["filename"])
        if os.path.exists(dest):
            log.info(f"    ↩ Skipping (already exists): {f['filename']}")
            downloaded.append(dict(f))
            continue
        try:
            log.info(f"    ↓ Downloading: {f['filename']}")
            download_to_file(session, f["url"], dest)
            if ensure_ascii_stl(dest, f["title"], config.precision):
                log.info(f"    ↻ Converted binary → ASCII: {f['filename']}")
            else:
                log.info(f"    ✔ Already ASCII: {f['filename']}")
            downloaded.append({**f, "savedAt": datetime.now().isoformat()})
        except (requests.exceptions.RequestException, FormatError, OSError) as e:
            log.warning(f"    ⚠ Failed file {f['filename']}: {e}")

    metadata = {
        "modelUrl": model_url,
        "title": details["title"],
        "description": details["description"],
        "summary": details["summary"],
        "files": downloaded,
    }
    with open(os.path.join(model_dir, "metadata.json"), "w") as fh:
        json.dump(metadata, fh, indent=2)
    log.info(f"  Wrote metadata.json ({len(downloaded)} file(s))")
    return metadata


def download_models(config: Config, session: Optional[requests.Session] = None) -> List[Dict[str, Any]]:
    """
    Fetch the most popular catalog models into ``config.downloads_dir``.

    Returns the metadata dicts of models that were written. A failing model
    is logged and skipped.
    """
    session = session or requests.Session()
    if config.cookie:
        session.headers["cookie"] = config.cookie

    log.info(f"[stl-bench] Fetching {config.download_count} popular models via GraphQL")
    model_urls = fetch_popular_models(session, config.download_count)
    log.info(f"[stl-bench] Found {len(model_urls)} model URLs")

    os.makedirs(config.downloads_dir, exist_ok=True)

    written = []
    for i, model_url in enumerate(model_urls):
        log.info(f"[stl-bench] [{i + 1}/{len(model_urls)}] Model: {model_url}")
        try:
            written.append(_download_model(session, model_url, i, config))
        except (GraphQLError, requests.exceptions.RequestException, OSError) as e:
            log.warning(f"  ⚠ Failed model: {e}")

    log.info("[stl-bench] Done.")
    return written
