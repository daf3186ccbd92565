"""Taxonomy service backends.

A taxonomy service answers one question: given a taxon identifier, what is
its ancestor chain? Backends return the chain nearest-ancestor-first, return
``None`` for taxa they have no record of, and raise ``LineageLookupError``
when the lookup itself fails.

Backends
--------
- ParentMapTaxonomy: in-memory child -> parent mapping
- load_parent_table: ParentMapTaxonomy from a ``taxon,parent`` CSV/TSV
- load_ncbi_nodes: ParentMapTaxonomy from an NCBI taxdump ``nodes.dmp``
- EntrezTaxonomy: remote NCBI E-utilities lookups over HTTP, rate limited
"""

from __future__ import annotations

import csv
import logging
import threading
import time
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

import pandas as pd
import requests

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

NCBI_ROOT_TAXID = "1"
ENTREZ_EFETCH_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/efetch.fcgi"
ENTREZ_TOOL_NAME = "taxon-refinery"
RETRY_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class LineageLookupError(RuntimeError):
    """Raised when a taxonomy backend fails to answer for one taxon."""

    def __init__(self, taxon: str, message: str):
        super().__init__(f"Lineage lookup failed for taxon {taxon!r}: {message}")
        self.taxon = taxon


class TaxonomyService(ABC):
    """Interface to an external taxonomy hierarchy."""

    @abstractmethod
    def ancestors(self, taxon: str) -> Optional[List[str]]:
        """Return the ancestors of ``taxon``, nearest first.

        Returns
        -------
        Optional[List[str]]
            Ancestor identifiers from the immediate parent up to the root,
            or None if the taxon is unknown.

        Raises
        ------
        LineageLookupError
            If the backend could not be queried.
        """


class ParentMapTaxonomy(TaxonomyService):
    """Taxonomy held in memory as a child -> parent mapping.

    A node whose parent is itself, empty, or missing is a root. Every taxon
    that appears either as a child or as a parent is known.

    Parameters
    ----------
    parents : Mapping[str, str]
        Mapping from taxon identifier to its parent's identifier.
    """

    def __init__(self, parents: Mapping[str, str]):
        self._parents: Dict[str, str] = {
            str(child): str(parent) for child, parent in parents.items()
        }
        self._known = set(self._parents) | {p for p in self._parents.values() if p}

    def __len__(self) -> int:
        return len(self._known)

    def __contains__(self, taxon: object) -> bool:
        return taxon in self._known

    def ancestors(self, taxon: str) -> Optional[List[str]]:
        if taxon not in self._known:
            return None

        lineage: List[str] = []
        seen = {taxon}
        current = taxon
        while True:
            parent = self._parents.get(current)
            if not parent or parent in seen:
                break
            lineage.append(parent)
            seen.add(parent)
            current = parent
        return lineage


def load_parent_table(
    path: PathLike,
    sep: str = ",",
    taxon_column: str = "taxon",
    parent_column: str = "parent",
) -> ParentMapTaxonomy:
    """Load a taxonomy from a two-column parent table.

    Parameters
    ----------
    path : PathLike
        Path to a delimited file with a header row.
    sep : str
        Column delimiter (default: ",").
    taxon_column : str
        Name of the child column.
    parent_column : str
        Name of the parent column. Empty values mark roots.

    Returns
    -------
    ParentMapTaxonomy
        Taxonomy built from the table.

    Raises
    ------
    FileNotFoundError
        If the table does not exist.
    ValueError
        If required columns are missing.
    """
    table_path = Path(path)
    if not table_path.exists():
        raise FileNotFoundError(f"Parent table not found: {table_path}")
    df = pd.read_csv(table_path, sep=sep, dtype=str, keep_default_na=False)
    missing = [col for col in (taxon_column, parent_column) if col not in df.columns]
    if missing:
        raise ValueError(f"Parent table missing columns: {missing}")

    parents = dict(zip(df[taxon_column].str.strip(), df[parent_column].str.strip()))
    logger.info("Loaded %d taxa from parent table %s", len(parents), table_path)
    return ParentMapTaxonomy(parents)


def load_ncbi_nodes(path: PathLike) -> ParentMapTaxonomy:
    """Load a taxonomy from an NCBI taxdump ``nodes.dmp`` file.

    Only the first two fields (tax_id, parent tax_id) are used. The NCBI
    root (taxid 1) is its own parent.

    Parameters
    ----------
    path : PathLike
        Path to ``nodes.dmp``.

    Returns
    -------
    ParentMapTaxonomy
        Taxonomy built from the dump.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file is empty.
    """
    nodes_path = Path(path)
    if not nodes_path.exists():
        raise FileNotFoundError(f"nodes.dmp not found: {nodes_path}")
    df = pd.read_csv(
        nodes_path,
        sep="|",
        header=None,
        usecols=[0, 1],
        dtype=str,
        quoting=csv.QUOTE_NONE,
    )
    df.columns = ["tax_id", "parent_tax_id"]
    if df.empty:
        raise ValueError(f"nodes.dmp is empty: {nodes_path}")

    parents = dict(zip(df["tax_id"].str.strip(), df["parent_tax_id"].str.strip()))
    logger.info("Loaded %d taxa from %s", len(parents), nodes_path)
    return ParentMapTaxonomy(parents)


class EntrezTaxonomy(TaxonomyService):
    """NCBI taxonomy queried through the E-utilities ``efetch`` endpoint.

    ``LineageEx`` lists ancestors root-first and leaves out the NCBI root,
    so lineages are reversed and the root taxid appended. This keeps them
    identical to what ``load_ncbi_nodes`` produces for the same taxon.

    Requests are spaced at least ``min_delay`` seconds apart across all
    threads sharing the instance, and throttling or server errors are
    retried with exponential backoff.

    Parameters
    ----------
    timeout : float
        Per-request timeout in seconds.
    api_key : str, optional
        NCBI API key (raises the request rate limit).
    email : str, optional
        Contact address sent with each request, as NCBI asks.
    session : requests.Session, optional
        Session to reuse between requests.
    url : str
        efetch endpoint.
    min_delay : float, optional
        Minimum seconds between requests (default: 0.34, or 0.11 with an
        API key, matching NCBI's 3 and 10 requests per second).
    retries : int
        Attempts per taxon before giving up (default: 3).
    retry_backoff : float
        Base of the backoff delay; attempt ``n`` waits ``retry_backoff ** n``
        seconds before retrying.
    tool : str
        Tool name reported to NCBI.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        api_key: Optional[str] = None,
        email: Optional[str] = None,
        session: Optional[requests.Session] = None,
        url: str = ENTREZ_EFETCH_URL,
        min_delay: Optional[float] = None,
        retries: int = 3,
        retry_backoff: float = 1.5,
        tool: str = ENTREZ_TOOL_NAME,
    ):
        if retries < 1:
            raise ValueError(f"retries must be >= 1, got {retries}")
        self.timeout = timeout
        self.api_key = api_key
        self.email = email
        self.session = session or requests.Session()
        self.url = url
        if min_delay is None:
            min_delay = 0.11 if api_key else 0.34
        self.min_delay = min_delay
        self.retries = retries
        self.retry_backoff = retry_backoff
        self.tool = tool
        self._throttle_lock = threading.Lock()
        self._next_request_ts = 0.0

    def _params(self, taxon: str) -> Dict[str, str]:
        params = {"db": "taxonomy", "id": taxon, "retmode": "xml", "tool": self.tool}
        if self.api_key:
            params["api_key"] = self.api_key
        if self.email:
            params["email"] = self.email
        return params

    def _wait_for_slot(self) -> None:
        # Reserve the next free slot under the lock, sleep outside it.
        with self._throttle_lock:
            now = time.monotonic()
            slot = max(now, self._next_request_ts)
            self._next_request_ts = slot + self.min_delay
        if slot > now:
            time.sleep(slot - now)

    def _get(self, taxon: str) -> requests.Response:
        for attempt in range(self.retries):
            self._wait_for_slot()
            try:
                response = self.session.get(
                    self.url, params=self._params(taxon), timeout=self.timeout
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                error = str(e)
            except requests.RequestException as e:
                raise LineageLookupError(taxon, str(e)) from e
            else:
                if response.status_code not in RETRY_STATUS_CODES:
                    try:
                        response.raise_for_status()
                    except requests.HTTPError as e:
                        raise LineageLookupError(taxon, str(e)) from e
                    return response
                error = f"HTTP {response.status_code}"

            if attempt == self.retries - 1:
                break
            backoff = self.retry_backoff ** attempt
            logger.warning(
                "efetch for taxon %s failed (%s); retrying in %.1fs", taxon, error, backoff
            )
            time.sleep(backoff)

        raise LineageLookupError(taxon, f"{error} after {self.retries} attempt(s)")

    def ancestors(self, taxon: str) -> Optional[List[str]]:
        logger.debug("Fetching lineage for taxon %s from %s", taxon, self.url)
        response = self._get(taxon)
        return self.parse_efetch(response.text, taxon)

    @staticmethod
    def parse_efetch(text: str, taxon: str) -> Optional[List[str]]:
        """Extract the nearest-first lineage from an efetch XML document."""
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise LineageLookupError(taxon, f"malformed efetch response: {e}") from e

        record = root.find("Taxon")
        if record is None:
            return None

        lineage = [
            node.findtext("TaxId", default="").strip()
            for node in record.findall("LineageEx/Taxon")
        ]
        lineage = [taxid for taxid in reversed(lineage) if taxid]
        if record.findtext("TaxId", default="").strip() != NCBI_ROOT_TAXID:
            lineage.append(NCBI_ROOT_TAXID)
        return lineage
