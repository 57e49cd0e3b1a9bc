"""
Vorhaben Module Package

Digitalisierungsvorhaben in Dataverse:
- Entity and OptionSet configuration (vorhaben_config)
- Phase classification (vorhaben_phases)
- Payload validation (vorhaben_schema)
- Dataverse services (vorhaben_service)
- Flask routes (api_endpoints)
"""

from .vorhaben_config import (
    LIFECYCLE_PHASE_RANGES, LIFECYCLE_STATUS, BPF_STAGE_IDS, get_option_label
)
from .vorhaben_phases import (
    Phase, classify_by_lifecycle_status, classify_by_stage_id, label_for_phase,
    classify_record, annotate_record, group_by_phase
)
from .vorhaben_service import VorhabenService, BpfService

__all__ = [
    # Configuration
    'LIFECYCLE_PHASE_RANGES', 'LIFECYCLE_STATUS', 'BPF_STAGE_IDS', 'get_option_label',

    # Classification
    'Phase', 'classify_by_lifecycle_status', 'classify_by_stage_id', 'label_for_phase',
    'classify_record', 'annotate_record', 'group_by_phase',

    # Services
    'VorhabenService', 'BpfService',

    # Flask integration
    'register_vorhaben_routes'
]


def register_vorhaben_routes(app, auth, vorhaben_service, bpf_service):
    """Register all Vorhaben routes with Flask app"""
    from .api_endpoints import register_routes
    register_routes(app, auth, vorhaben_service, bpf_service)
