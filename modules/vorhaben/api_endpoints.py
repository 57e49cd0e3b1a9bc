# ============================================================================
# modules/vorhaben/api_endpoints.py
"""
API Endpoints for Digitalisierungsvorhaben
Flask routes for listing, editing and planning views
"""

import logging
from datetime import datetime
from flask import request, jsonify

from modules.shared.calendar_components import PlanningTimeline
from modules.shared.ui_helpers import UIHelpers
from .vorhaben_config import DASHBOARD_BUCKETS, PLANUNG_BUCKETS, VORHABEN_PRIMARY_KEY
from .vorhaben_phases import Phase, annotate_record, classify_by_stage_id, group_by_phase
from .vorhaben_schema import VorhabenValidationError, validate_vorhaben_payload
from .vorhaben_service import BpfService

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = 'Nicht authentifiziert. Bitte zuerst anmelden.'


def _int_arg(name):
    """Optional integer query parameter; ValueError on garbage"""
    value = request.args.get(name)
    if value in (None, ''):
        return None
    return int(value)


def _bucket_lists(records, buckets):
    """Records per lifecycle bucket, keyed by bucket key"""
    result = {}
    for key, title, code, _ in buckets:
        items = [r for r in records if r.get('cr6df_lifecyclestatus') == code]
        result[key] = {
            'title': title,
            'count': len(items),
            'data': items,
        }
    return result


def register_routes(app, auth, vorhaben_service, bpf_service):
    """Register all Vorhaben API routes"""

    def require_auth(f):
        """Authentication decorator"""
        def decorated_function(*args, **kwargs):
            if not auth.is_authenticated():
                return jsonify({'success': False, 'error': NOT_AUTHENTICATED}), 401
            return f(*args, **kwargs)
        decorated_function.__name__ = f.__name__
        return decorated_function

    def load_records(records=None):
        """Records (all unless given) plus the BPF index by Vorhaben id"""
        if records is None:
            records = vorhaben_service.list_all()
        bpf_by_id = BpfService.index_by_vorhaben(bpf_service.get_all())
        return records, bpf_by_id

    def annotate_all(records, bpf_by_id):
        return [annotate_record(r, bpf_by_id.get(r.get(VORHABEN_PRIMARY_KEY))) for r in records]

    @app.route('/api/vorhaben')
    @require_auth
    def api_vorhaben_list():
        """List Vorhaben; first of typ, kritikalitaet, lifecyclestatus, search wins"""
        try:
            typ = _int_arg('typ')
            kritikalitaet = _int_arg('kritikalitaet')
            lifecyclestatus = _int_arg('lifecyclestatus')
            phase = _int_arg('phase')
        except ValueError:
            return jsonify({'success': False, 'error': 'Ungültiger Filterwert'}), 400

        if phase is not None and phase not in [p.value for p in Phase]:
            return jsonify({'success': False, 'error': 'Phase muss zwischen 1 und 4 liegen'}), 400

        search = request.args.get('search')

        try:
            if typ is not None:
                records = vorhaben_service.list_by_typ(typ)
            elif kritikalitaet is not None:
                records = vorhaben_service.list_by_kritikalitaet(kritikalitaet)
            elif lifecyclestatus is not None:
                records = vorhaben_service.list_by_lifecycle_status(lifecyclestatus)
            elif search:
                records = vorhaben_service.search_by_titel(search)
            else:
                records = vorhaben_service.list_all()

            data = annotate_all(*load_records(records))
            if phase is not None:
                data = [r for r in data if r['phase'] == phase]

            return jsonify({
                'success': True,
                'count': len(data),
                'data': data
            })

        except Exception as e:
            logger.error(f"Error listing Vorhaben: {e}")
            return UIHelpers.error_response(e)

    @app.route('/api/vorhaben', methods=['POST'])
    @require_auth
    def api_vorhaben_create():
        """Create a new Vorhaben"""
        try:
            payload = validate_vorhaben_payload(request.get_json(silent=True), partial=False)
        except VorhabenValidationError as e:
            return jsonify({'success': False, 'error': str(e), 'errors': e.errors}), 400

        try:
            created = vorhaben_service.create_vorhaben(payload)
            return jsonify({'success': True, 'data': created}), 201
        except Exception as e:
            logger.error(f"Error creating Vorhaben: {e}")
            return UIHelpers.error_response(e)

    @app.route('/api/vorhaben/<vorhaben_id>')
    @require_auth
    def api_vorhaben_detail(vorhaben_id):
        """Single Vorhaben with BPF stage and phase"""
        try:
            record = vorhaben_service.get_by_id(vorhaben_id)
            bpf = bpf_service.get_by_vorhaben_id(vorhaben_id)

            data = annotate_record(record, bpf)
            return jsonify({
                'success': True,
                'data': data,
                'bpf': {
                    'activeStageId': bpf.get('_activestageid_value'),
                    'activeStageStartedOn': bpf.get('activestagestartedon'),
                    'completedOn': bpf.get('completedon'),
                    'phase': int(classify_by_stage_id(bpf.get('_activestageid_value'))),
                } if bpf else None
            })

        except Exception as e:
            logger.error(f"Error loading Vorhaben {vorhaben_id}: {e}")
            return UIHelpers.error_response(e)

    @app.route('/api/vorhaben/<vorhaben_id>', methods=['PATCH'])
    @require_auth
    def api_vorhaben_update(vorhaben_id):
        """Partial update of a Vorhaben"""
        body = request.get_json(silent=True)
        if not body:
            return jsonify({'success': False, 'error': 'Keine Daten zum Aktualisieren'}), 400

        try:
            payload = validate_vorhaben_payload(body, partial=True)
        except VorhabenValidationError as e:
            return jsonify({'success': False, 'error': str(e), 'errors': e.errors}), 400

        try:
            updated = vorhaben_service.update_vorhaben(vorhaben_id, payload)
            return jsonify({'success': True, 'data': updated})
        except Exception as e:
            logger.error(f"Error updating Vorhaben {vorhaben_id}: {e}")
            return UIHelpers.error_response(e)

    @app.route('/api/vorhaben/<vorhaben_id>', methods=['DELETE'])
    @require_auth
    def api_vorhaben_delete(vorhaben_id):
        """Delete a Vorhaben"""
        try:
            vorhaben_service.delete_vorhaben(vorhaben_id)
            return jsonify({'success': True, 'message': 'Vorhaben erfolgreich gelöscht'})
        except Exception as e:
            logger.error(f"Error deleting Vorhaben {vorhaben_id}: {e}")
            return UIHelpers.error_response(e)

    @app.route('/api/vorhaben/<vorhaben_id>/kalender')
    @require_auth
    def api_vorhaben_kalender(vorhaben_id):
        """Timeline of this Vorhaben next to the other planned ones"""
        try:
            current = vorhaben_service.get_by_id(vorhaben_id)
            others = vorhaben_service.list_all()
            timeline = PlanningTimeline().build_timeline(others, current=current)
            return jsonify({'success': True, 'timeline': timeline})
        except Exception as e:
            logger.error(f"Error building timeline for {vorhaben_id}: {e}")
            return UIHelpers.error_response(e)

    @app.route('/api/planung')
    @require_auth
    def api_planung():
        """Planning page: four buckets plus the overview timeline"""
        try:
            records = annotate_all(*load_records())
            return jsonify({
                'success': True,
                'buckets': _bucket_lists(records, PLANUNG_BUCKETS),
                'timeline': PlanningTimeline().build_timeline(records),
                'timestamp': datetime.now().isoformat()
            })
        except Exception as e:
            logger.error(f"Error loading planning data: {e}")
            return UIHelpers.error_response(e)

    @app.route('/api/dashboard')
    @require_auth
    def api_dashboard():
        """Dashboard: counts per phase and the main buckets"""
        try:
            raw_records, bpf_by_id = load_records()
            by_phase = group_by_phase(raw_records, bpf_by_id)
            phase_counts = {label: len(items) for label, items in by_phase.items()}

            records = annotate_all(raw_records, bpf_by_id)
            buckets = _bucket_lists(records, DASHBOARD_BUCKETS)
            buckets['alle'] = {'title': 'Alle Vorhaben', 'count': len(records), 'data': records}

            return jsonify({
                'success': True,
                'summary': {
                    'total': len(records),
                    'phases': phase_counts
                },
                'buckets': buckets,
                'timestamp': datetime.now().isoformat()
            })
        except Exception as e:
            logger.error(f"Error loading dashboard: {e}")
            return UIHelpers.error_response(e)
