"""
Phase classification for Vorhaben

Maps a lifecycle status code or a BPF stage id onto one of the four
pipeline phases. Unknown or missing input falls back to Initialisierung so
that new statuses in Dataverse never break the views.
"""

import logging
from collections import OrderedDict
from enum import IntEnum
from typing import Dict, Iterable, List, Optional

from .vorhaben_config import (
    BPF_ACTIVE_STAGE, BPF_STAGE_IDS, KOMPLEXITAET_OPTIONS, KRITIKALITAET_OPTIONS,
    LIFECYCLE_PHASE_RANGES, LIFECYCLE_STATUS_OPTIONS, TYP_OPTIONS, VORHABEN_PRIMARY_KEY,
    get_option_label, validate_phase_ranges
)

logger = logging.getLogger(__name__)


class Phase(IntEnum):
    INITIALISIERUNG = 1
    ANALYSE_BEWERTUNG = 2
    PLANUNG = 3
    UMSETZUNG = 4


PHASE_LABELS = {
    Phase.INITIALISIERUNG: 'Initialisierung',
    Phase.ANALYSE_BEWERTUNG: 'Analyse & Bewertung',
    Phase.PLANUNG: 'Planung',
    Phase.UMSETZUNG: 'Umsetzung',
}

DEFAULT_PHASE = Phase.INITIALISIERUNG

_range_problems = validate_phase_ranges()
if _range_problems:
    raise ValueError(f"Invalid LIFECYCLE_PHASE_RANGES: {'; '.join(_range_problems)}")


def classify_by_lifecycle_status(code: Optional[int]) -> Phase:
    """Phase for a lifecycle status code (inclusive range match)"""
    if code is None:
        return DEFAULT_PHASE

    if code not in LIFECYCLE_STATUS_OPTIONS:
        logger.debug(f"Lifecycle status {code} has no known label")

    for phase, (low, high) in LIFECYCLE_PHASE_RANGES.items():
        if low <= code <= high:
            return Phase(phase)
    return DEFAULT_PHASE


def classify_by_stage_id(stage_id: Optional[str]) -> Phase:
    """Phase for a BPF stage GUID, case-insensitive"""
    if not stage_id:
        return DEFAULT_PHASE
    phase = BPF_STAGE_IDS.get(stage_id.strip().lower())
    return Phase(phase) if phase else DEFAULT_PHASE


def label_for_phase(phase: Phase) -> str:
    return PHASE_LABELS[Phase(phase)]


def classify_record(record: Dict, bpf: Optional[Dict] = None) -> Phase:
    """Prefer the process flow stage, fall back to the lifecycle status"""
    if bpf and bpf.get(BPF_ACTIVE_STAGE):
        return classify_by_stage_id(bpf[BPF_ACTIVE_STAGE])
    return classify_by_lifecycle_status(record.get('cr6df_lifecyclestatus'))


def annotate_record(record: Dict, bpf: Optional[Dict] = None) -> Dict:
    """Copy of the record with phase and OptionSet labels added"""
    phase = classify_record(record, bpf)
    annotated = dict(record)
    annotated.update({
        'phase': int(phase),
        'phaseName': label_for_phase(phase),
        'typLabel': get_option_label(record.get('cr6df_typ'), TYP_OPTIONS),
        'lifecycleStatusLabel': get_option_label(record.get('cr6df_lifecyclestatus'), LIFECYCLE_STATUS_OPTIONS),
        'kritikalitaetLabel': get_option_label(record.get('cr6df_kritikalitaet'), KRITIKALITAET_OPTIONS),
        'komplexitaetLabel': get_option_label(record.get('cr6df_komplexitaet'), KOMPLEXITAET_OPTIONS),
    })
    if bpf:
        annotated['phaseSince'] = bpf.get('activestagestartedon')
    return annotated


def group_by_phase(records: Iterable[Dict], bpf_by_id: Optional[Dict[str, Dict]] = None) -> Dict[str, List[Dict]]:
    """Group records by phase label, in pipeline order"""
    bpf_by_id = bpf_by_id or {}
    groups = OrderedDict((PHASE_LABELS[phase], []) for phase in Phase)
    for record in records:
        bpf = bpf_by_id.get(record.get(VORHABEN_PRIMARY_KEY))
        groups[label_for_phase(classify_record(record, bpf))].append(record)
    return groups
