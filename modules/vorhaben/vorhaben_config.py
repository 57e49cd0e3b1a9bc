# modules/vorhaben/vorhaben_config.py - Centralized Vorhaben Configuration

"""
Centralized Vorhaben Configuration

Dataverse entity names, field lists, OptionSet values and the Business
Process Flow stage ids for the "ideaToSolution" flow, kept in one place.
"""

from collections import OrderedDict
from typing import Dict, List, Optional, Tuple


# ============================================================================
# DATAVERSE ENTITIES
# ============================================================================

VORHABEN_ENTITY_SET = 'cr6df_sgsw_digitalisierungsvorhabens'
VORHABEN_PRIMARY_KEY = 'cr6df_sgsw_digitalisierungsvorhabenid'

BPF_ENTITY_SET = 'cr6df_ideatosolutions'
BPF_PRIMARY_KEY = 'businessprocessflowinstanceid'
BPF_VORHABEN_LOOKUP = '_bpf_cr6df_sgsw_digitalisierungsvorhabenid_value'
BPF_ACTIVE_STAGE = '_activestageid_value'

# Fields shown in list views
LIST_SELECT_FIELDS = [
    'cr6df_sgsw_digitalisierungsvorhabenid',
    'cr6df_newcolumn',
    'cr6df_name',
    'cr6df_typ',
    '_cr6df_verantwortlicher_value',
    'cr6df_planung_geplanterstart',
    'cr6df_planung_geplantesende',
    'cr6df_lifecyclestatus',
    'cr6df_kritikalitaet',
    'cr6df_komplexitaet',
    'createdon',
    'modifiedon',
]

# All fields for the detail view
DETAIL_SELECT_FIELDS = [
    'cr6df_sgsw_digitalisierungsvorhabenid',
    'cr6df_newcolumn',
    'cr6df_name',
    'cr6df_beschreibung',
    'cr6df_typ',
    '_cr6df_verantwortlicher_value',
    '_cr6df_ideengeber_value',
    'cr6df_komplexitaet',
    'cr6df_kritikalitaet',
    'cr6df_prioritat',
    'cr6df_lifecyclestatus',
    'cr6df_planung_geplanterstart',
    'cr6df_planung_geplantesende',
    'cr6df_detailanalyse_personentage',
    'cr6df_detailanalyse_ergebnis',
    'cr6df_itotboard_begruendung',
    'cr6df_initalbewertung_begruendung',
    'cr6df_pia_pfad',
    'cr6df_genehmigt_am',
    'cr6df_abgelehnt_am',
    'cr6df_in_ueberarbeitung_am',
    'cr6df_abgeschlossen_am',
    'createdon',
    'modifiedon',
]

BPF_SELECT_FIELDS = [
    'businessprocessflowinstanceid',
    '_activestageid_value',
    'activestagestartedon',
    '_bpf_cr6df_sgsw_digitalisierungsvorhabenid_value',
    'completedon',
]


# ============================================================================
# OPTIONSET VALUES
# ============================================================================

TYP_OPTIONS = OrderedDict([
    (562520000, 'Idee'),
    (562520001, 'Vorhaben'),
    (562520002, 'Projekt'),
])

KOMPLEXITAET_OPTIONS = OrderedDict([
    (562520000, 'Niedrig'),
    (562520001, 'Mittel'),
    (562520002, 'Hoch'),
])

KRITIKALITAET_OPTIONS = OrderedDict([
    (562520000, 'Niedrig'),
    (562520001, 'Mittel'),
    (562520002, 'Hoch'),
])

# Named lifecycle codes used by the planning and dashboard views
LIFECYCLE_STATUS = {
    'NEU': 562520000,
    'IN_PRUEFUNG': 562520003,
    'ABGELEHNT': 562520004,
    'GENEHMIGT': 562520005,
    'IDEE_IN_PROJEKTPORTFOLIO': 562520006,
    'IDEE_IN_QUARTALSPLANUNG': 562520007,
    'IDEE_IN_WOCHENPLANUNG': 562520008,
    'IN_UEBERARBEITUNG': 562520009,
    'IN_UMSETZUNG': 562520010,
    'ABGESCHLOSSEN': 562520011,
}

LIFECYCLE_STATUS_OPTIONS = OrderedDict([
    (562520000, 'Neu'),
    (562520003, 'In Prüfung'),
    (562520004, 'Abgelehnt'),
    (562520005, 'Genehmigt'),
    (562520006, 'Idee in Projektportfolio aufgenommen'),
    (562520007, 'Idee in Quartalsplanung aufgenommen'),
    (562520008, 'Idee in Wochenplanung aufgenommen'),
    (562520009, 'In Überarbeitung'),
    (562520010, 'In Umsetzung'),
    (562520011, 'Abgeschlossen'),
])


# ============================================================================
# PHASES
# ============================================================================

# Inclusive lifecycle code ranges per phase number (1-4)
LIFECYCLE_PHASE_RANGES: Dict[int, Tuple[int, int]] = OrderedDict([
    (1, (562520000, 562520002)),
    (2, (562520003, 562520005)),
    (3, (562520006, 562520009)),
    (4, (562520010, 562520011)),
])

# Stage GUIDs of the "ideaToSolution" BPF (taken from traversedpath)
BPF_STAGE_IDS = OrderedDict([
    ('d770e370-8da5-48b9-b36e-69a33e7d8879', 1),  # Initialisierung
    ('65c7768d-2a18-40b9-9dd6-035819e926ba', 2),  # Analyse & Bewertung
    ('49e8aa6a-d56f-48fa-b80a-2edfc816fffa', 3),  # Planung
    ('b8209429-fea3-4fde-9440-2bc168bf14b3', 4),  # Umsetzung
])

# Buckets on the planning page (key, title, lifecycle code, timeline color)
PLANUNG_BUCKETS = [
    ('projektportfolio', 'In Planung - Projektportfolio', LIFECYCLE_STATUS['IDEE_IN_PROJEKTPORTFOLIO'], 'info'),
    ('quartalsplanung', 'In Planung - Quartalsplanung', LIFECYCLE_STATUS['IDEE_IN_QUARTALSPLANUNG'], 'warning'),
    ('wochenplanung', 'In Planung - Wochenplanung', LIFECYCLE_STATUS['IDEE_IN_WOCHENPLANUNG'], 'secondary'),
    ('inUmsetzung', 'In Umsetzung', LIFECYCLE_STATUS['IN_UMSETZUNG'], 'success'),
]

DASHBOARD_BUCKETS = [b for b in PLANUNG_BUCKETS if b[0] != 'wochenplanung']


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def get_option_label(value: Optional[int], options: Dict[int, str]) -> str:
    """Label for an OptionSet value, '-' when absent or unknown"""
    if value is None:
        return '-'
    return options.get(value, '-')


def get_status_color(status: Optional[int]) -> str:
    """Timeline bar color bucket for a lifecycle status"""
    for _, _, code, color in PLANUNG_BUCKETS:
        if status == code:
            return color
    return 'neutral'


def validate_phase_ranges(ranges: Dict[int, Tuple[int, int]] = None) -> List[str]:
    """Return problems with the phase range table (empty when consistent)"""
    ranges = LIFECYCLE_PHASE_RANGES if ranges is None else ranges
    problems = []

    if sorted(ranges.keys()) != [1, 2, 3, 4]:
        problems.append(f"Expected phases 1-4, got {sorted(ranges.keys())}")

    bounds = sorted(ranges.items(), key=lambda item: item[1][0])
    for phase, (low, high) in bounds:
        if low > high:
            problems.append(f"Phase {phase}: lower bound {low} above upper bound {high}")
    for (phase_a, (_, high_a)), (phase_b, (low_b, _)) in zip(bounds, bounds[1:]):
        if low_b <= high_a:
            problems.append(f"Phases {phase_a} and {phase_b} overlap")

    return problems
