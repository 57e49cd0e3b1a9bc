"""
Services for the Digitalisierungsvorhaben and ideaToSolution BPF tables

Typed wrappers around the generic Dataverse client.
"""

import logging
from typing import Dict, List, Optional

from modules.shared.dataverse_api import DataverseAPI
from .vorhaben_config import (
    BPF_ENTITY_SET, BPF_SELECT_FIELDS, BPF_VORHABEN_LOOKUP, DETAIL_SELECT_FIELDS,
    LIST_SELECT_FIELDS, VORHABEN_ENTITY_SET
)

logger = logging.getLogger(__name__)


def _odata_string(value: str) -> str:
    """Escape a string literal for an OData filter"""
    return value.replace("'", "''")


class VorhabenService:
    """CRUD and filter methods for Digitalisierungsvorhaben"""

    def __init__(self, api: DataverseAPI):
        self.api = api

    def list_all(self) -> List[Dict]:
        """All Vorhaben for list views, newest first"""
        return self.list_filtered()

    def list_filtered(self, filter: Optional[str] = None) -> List[Dict]:
        return self.api.list(
            VORHABEN_ENTITY_SET,
            select=LIST_SELECT_FIELDS,
            filter=filter,
            orderby='createdon desc'
        )

    def get_by_id(self, vorhaben_id: str) -> Dict:
        return self.api.get(VORHABEN_ENTITY_SET, vorhaben_id, select=DETAIL_SELECT_FIELDS)

    def create_vorhaben(self, data: Dict) -> Dict:
        logger.info(f"Creating Vorhaben '{data.get('cr6df_name')}'")
        return self.api.create(VORHABEN_ENTITY_SET, data)

    def update_vorhaben(self, vorhaben_id: str, data: Dict) -> Dict:
        logger.info(f"Updating Vorhaben {vorhaben_id}: {', '.join(sorted(data.keys()))}")
        return self.api.update(VORHABEN_ENTITY_SET, vorhaben_id, data)

    def delete_vorhaben(self, vorhaben_id: str) -> None:
        logger.info(f"Deleting Vorhaben {vorhaben_id}")
        self.api.delete(VORHABEN_ENTITY_SET, vorhaben_id)

    # ============================================
    # Filter helpers
    # ============================================

    def list_by_typ(self, typ: int) -> List[Dict]:
        return self.list_filtered(f"cr6df_typ eq {int(typ)}")

    def list_by_lifecycle_status(self, status: int) -> List[Dict]:
        return self.list_filtered(f"cr6df_lifecyclestatus eq {int(status)}")

    def list_by_kritikalitaet(self, kritikalitaet: int) -> List[Dict]:
        return self.list_filtered(f"cr6df_kritikalitaet eq {int(kritikalitaet)}")

    def search_by_titel(self, search_term: str) -> List[Dict]:
        return self.list_filtered(f"contains(cr6df_name, '{_odata_string(search_term)}')")


class BpfService:
    """Reads the active stage of the ideaToSolution business process flow"""

    def __init__(self, api: DataverseAPI):
        self.api = api

    def get_by_vorhaben_id(self, vorhaben_id: str) -> Optional[Dict]:
        results = self.api.list(
            BPF_ENTITY_SET,
            select=BPF_SELECT_FIELDS,
            filter=f"{BPF_VORHABEN_LOOKUP} eq {vorhaben_id}",
            top=1
        )
        return results[0] if results else None

    def get_all(self) -> List[Dict]:
        return self.api.list(BPF_ENTITY_SET, select=BPF_SELECT_FIELDS)

    @staticmethod
    def index_by_vorhaben(records: List[Dict]) -> Dict[str, Dict]:
        """Map Vorhaben id -> BPF record"""
        return {
            record[BPF_VORHABEN_LOOKUP]: record
            for record in records
            if record.get(BPF_VORHABEN_LOOKUP)
        }
