from __future__ import annotations

import datetime as dt
import json
import os
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

import requests

from . import __version__
from .errors import ArxivFetchError, ArxivParseError
from .utils import parse_iso, utc_now

ARXIV_API = "https://export.arxiv.org/api/query"
DEFAULT_USER_AGENT = f"clawkit/{__version__} (+https://example.invalid)"
DEFAULT_CATEGORY = "CS"
SUMMARY_PREVIEW_CHARS = 300
MAX_LISTED_AUTHORS = 3

ATOM_NS = "{http://www.w3.org/2005/Atom}"
ARXIV_NS = "{http://arxiv.org/schemas/atom}"

FIELD_PREFIX_RE = re.compile(r"^\s*(?:ti|au|abs|co|jr|cat|rn|id|all):", re.IGNORECASE)
BOOLEAN_RE = re.compile(r"\b(?:AND|OR|ANDNOT)\b")
WS_RE = re.compile(r"\s+")


def request_headers() -> Dict[str, str]:
    ua = os.getenv("CLAWKIT_USER_AGENT", DEFAULT_USER_AGENT)
    return {"User-Agent": ua, "Accept": "application/atom+xml,application/xml;q=0.9,*/*;q=0.8"}


def build_search_query(text: str) -> str:
    query = text.strip()
    if FIELD_PREFIX_RE.match(query) or BOOLEAN_RE.search(query):
        return query
    return f"all:{query}"


def fetch_arxiv(query: str, limit: int, timeout: int = 30) -> str:
    params = {
        "search_query": build_search_query(query),
        "start": 0,
        "max_results": limit,
        "sortBy": "submittedDate",
        "sortOrder": "descending",
    }
    try:
        r = requests.get(ARXIV_API, params=params, headers=request_headers(), timeout=timeout)
        r.raise_for_status()
    except requests.RequestException as exc:
        raise ArxivFetchError(f"arXiv request failed: {exc}") from exc
    return r.text


def clean_text(text: Optional[str]) -> str:
    return WS_RE.sub(" ", text or "").strip()


def _entry_category(entry: ET.Element) -> str:
    primary = entry.find(f"{ARXIV_NS}primary_category")
    if primary is not None and primary.get("term"):
        return str(primary.get("term"))
    for cat in entry.findall(f"{ATOM_NS}category"):
        term = cat.get("term")
        if term:
            return term
    return DEFAULT_CATEGORY


def _entry_pdf_link(entry: ET.Element) -> Optional[str]:
    for link in entry.findall(f"{ATOM_NS}link"):
        href = link.get("href")
        if href and (link.get("type") == "application/pdf" or link.get("title") == "pdf"):
            return href
    return None


def entry_to_paper(entry: ET.Element) -> Dict[str, Any]:
    authors = []
    for author in entry.findall(f"{ATOM_NS}author"):
        name = clean_text(author.findtext(f"{ATOM_NS}name"))
        if name:
            authors.append(name)
    title = clean_text(entry.findtext(f"{ATOM_NS}title"))
    return {
        "id": clean_text(entry.findtext(f"{ATOM_NS}id")) or None,
        "published": clean_text(entry.findtext(f"{ATOM_NS}published")) or None,
        "title": title or "No Title",
        "category": _entry_category(entry),
        "authors": authors,
        "summary": clean_text(entry.findtext(f"{ATOM_NS}summary")),
        "pdf_link": _entry_pdf_link(entry),
    }


def parse_feed(xml_text: str) -> List[Dict[str, Any]]:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise ArxivParseError(f"Invalid arXiv response: {exc}") from exc
    return [entry_to_paper(entry) for entry in root.findall(f"{ATOM_NS}entry")]


def filter_recent(
    papers: List[Dict[str, Any]],
    days: int,
    now: Optional[dt.datetime] = None,
) -> List[Dict[str, Any]]:
    cutoff = (now or utc_now()) - dt.timedelta(days=days)
    kept = []
    for paper in papers:
        published = parse_iso(paper.get("published"))
        if published is not None and published >= cutoff:
            kept.append(paper)
    return kept


def format_authors(authors: List[str]) -> str:
    listed = ", ".join(authors[:MAX_LISTED_AUTHORS])
    return listed + (" et al." if len(authors) > MAX_LISTED_AUTHORS else "")


def render_markdown(papers: List[Dict[str, Any]]) -> str:
    if not papers:
        return "_No results found._"
    blocks = []
    for p in papers:
        date = (p.get("published") or "").split("T")[0]
        summary = (p.get("summary") or "")[:SUMMARY_PREVIEW_CHARS]
        blocks.append(
            f"- **{p.get('title')}**\n"
            f"  *{format_authors(p.get('authors') or [])}* | `{p.get('category')}` | {date} | "
            f"[PDF]({p.get('pdf_link') or '#'})\n"
            f"  > {summary}..."
        )
    return "\n\n".join(blocks)


def render_json(papers: List[Dict[str, Any]]) -> str:
    return json.dumps(papers, ensure_ascii=False, indent=2)
