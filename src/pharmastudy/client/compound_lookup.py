"""Compound lookup against PubChem PUG REST.

Used to pre-fill a molecule or medication item: name -> CID -> properties,
synonyms and description. A compound that cannot be found is a normal
outcome, so every failure comes back as ``LookupResult(success=False)``
instead of an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from pharmastudy.web.schemas import PropertyIn

logger = structlog.get_logger(__name__)

PUBCHEM_BASE_URL = "https://pubchem.ncbi.nlm.nih.gov/rest/pug"
PROPERTY_FIELDS = "IUPACName,MolecularFormula,MolecularWeight"
MAX_SYNONYMS = 5
DEFAULT_TIMEOUT = 10.0


@dataclass
class Compound:
    """Compound data relevant to a study item."""

    cid: int
    name: str
    molecular_formula: str
    molecular_weight: str
    iupac_name: str | None = None
    synonyms: list[str] = field(default_factory=list)
    description: str = ""


@dataclass
class LookupResult:
    success: bool
    compound: Compound | None = None
    error: str | None = None


def structure_image_url(cid: int) -> str:
    """URL of the 2D structure PNG for a compound."""
    return f"{PUBCHEM_BASE_URL}/compound/cid/{cid}/PNG"


def compound_to_properties(compound: Compound) -> list[PropertyIn]:
    """Item properties derived from a compound."""
    properties = [
        PropertyIn(key="Molecular Formula", value=compound.molecular_formula),
        PropertyIn(key="Molar Mass", value=f"{compound.molecular_weight} g/mol"),
        PropertyIn(key="CID", value=str(compound.cid)),
    ]
    if compound.iupac_name:
        properties.append(PropertyIn(key="IUPAC Name", value=compound.iupac_name))
    if compound.synonyms:
        properties.append(PropertyIn(key="Synonyms", value=", ".join(compound.synonyms)))
    return properties


def _first_information(data: dict[str, Any]) -> dict[str, Any]:
    information = data.get("InformationList", {}).get("Information") or [{}]
    return information[0]


class CompoundLookup:
    """PubChem client."""

    def __init__(
        self,
        base_url: str = PUBCHEM_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def _get_json(self, path: str) -> dict[str, Any] | None:
        """GET a path; None on a non-2xx answer."""
        response = self._client.get(path)
        if response.is_error:
            logger.debug("pubchem.request_failed", path=path, status=response.status_code)
            return None
        return response.json()

    def _synonyms(self, cid: int) -> list[str]:
        data = self._get_json(f"/compound/cid/{cid}/synonyms/JSON")
        if not data:
            return []
        return list(_first_information(data).get("Synonym", [])[:MAX_SYNONYMS])

    def _description(self, cid: int) -> str:
        data = self._get_json(f"/compound/cid/{cid}/description/JSON")
        if not data:
            return ""
        # The first entry is usually the title record; take the first with text
        for info in data.get("InformationList", {}).get("Information", []):
            if info.get("Description"):
                return info["Description"]
        return ""

    def search(self, query: str) -> LookupResult:
        """Look up a compound by name.

        Args:
            query: Compound name, e.g. "aspirin"

        Returns:
            LookupResult with the compound, or success=False and an error message
        """
        query = query.strip()
        if not query:
            return LookupResult(success=False, error="Empty compound name")

        try:
            found = self._get_json(f"/compound/name/{quote(query, safe='')}/cids/JSON")
            if found is None:
                return LookupResult(success=False, error="Compound not found")

            cids = found.get("IdentifierList", {}).get("CID") or []
            if not cids:
                return LookupResult(success=False, error="No compound found with that name")
            cid = cids[0]

            props_data = self._get_json(f"/compound/cid/{cid}/property/{PROPERTY_FIELDS}/JSON")
            if props_data is None:
                return LookupResult(success=False, error="Failed to fetch compound properties")

            props = (props_data.get("PropertyTable", {}).get("Properties") or [None])[0]
            if not props:
                return LookupResult(success=False, error="No properties found")

            compound = Compound(
                cid=props.get("CID", cid),
                name=query,
                molecular_formula=props.get("MolecularFormula", ""),
                molecular_weight=str(props.get("MolecularWeight", "")),
                iupac_name=props.get("IUPACName"),
                synonyms=self._synonyms(cid),
                description=self._description(cid),
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("pubchem.lookup_failed", query=query, error=str(e))
            return LookupResult(success=False, error="Network error occurred")

        logger.info("pubchem.lookup_succeeded", query=query, cid=compound.cid)
        return LookupResult(success=True, compound=compound)
