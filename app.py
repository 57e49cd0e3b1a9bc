"""
Leitungsteam Platform - Main Flask Application

JSON backend for viewing and editing Digitalisierungsvorhaben stored in
Microsoft Dataverse, with Azure AD device code sign-in.
"""

import os
import logging
from flask import Flask, request, jsonify
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Import custom modules
from config import config
from modules.shared.azure_oauth import AuthSettings, DeviceCodeAuth
from modules.shared.token_store import create_token_store
from modules.shared.dataverse_api import DataverseAPI
from modules.shared.ui_helpers import UIHelpers
from modules.vorhaben import VorhabenService, BpfService, register_vorhaben_routes


def create_app(config_name: str = 'default', auth: DeviceCodeAuth = None) -> Flask:
    """Build the Flask app; auth can be injected for tests"""
    cfg = config[config_name]

    app = Flask(__name__)
    app.config.from_object(cfg)
    app.secret_key = cfg.SECRET_KEY

    # ========================================================================
    # SERVICES
    # ========================================================================

    if auth is None:
        if cfg.TOKEN_CACHE_FILE and cfg.TOKEN_CACHE_FILE.startswith('/tmp/'):
            logger.warning("Token cache lives in /tmp and will be lost on cold starts")
        auth = DeviceCodeAuth(AuthSettings.from_config(cfg), create_token_store(cfg.TOKEN_CACHE_FILE))

    api = DataverseAPI(
        base_url=auth.settings.resource,
        token_provider=auth.get_valid_token,
        api_version=cfg.DATAVERSE_API_VERSION,
        timeout=cfg.HTTP_TIMEOUT
    )
    app.extensions['dataverse_auth'] = auth
    app.extensions['dataverse_api'] = api

    # ========================================================================
    # AUTHENTICATION ENDPOINTS
    # ========================================================================

    @app.route('/api/dataverse/auth')
    def auth_status():
        """Current sign-in state; never refreshes the token"""
        try:
            status = auth.get_auth_status()
            body = {'success': True, 'isAuthenticated': status.is_authenticated}
            if status.expires_in is not None:
                body['expiresIn'] = status.expires_in
            return jsonify(body)
        except Exception as e:
            logger.error(f"Auth status check failed: {e}")
            return UIHelpers.error_response(e, isAuthenticated=False)

    @app.route('/api/dataverse/auth', methods=['DELETE'])
    def auth_logout():
        """Logout - deletes the stored credential"""
        try:
            auth.logout()
        except OSError as e:
            logger.error(f"Could not delete token cache: {e}")
        return jsonify({'success': True, 'message': 'Erfolgreich abgemeldet'})

    @app.route('/api/dataverse/auth/login')
    def auth_login():
        """Start the device code flow"""
        try:
            device_code = auth.initiate()
            return jsonify({
                'success': True,
                'userCode': device_code.user_code,
                'verificationUrl': device_code.verification_url,
                'deviceCode': device_code.device_code,
                'expiresIn': device_code.expires_in,
                'interval': device_code.interval,
                'message': device_code.message
            })
        except Exception as e:
            logger.error(f"Login initiation failed: {e}")
            return UIHelpers.error_response(e)

    @app.route('/api/dataverse/auth/poll', methods=['POST'])
    def auth_poll():
        """One poll of the token endpoint; the client repeats after interval"""
        body = request.get_json(silent=True)
        device_code = body.get('deviceCode') if isinstance(body, dict) else None
        if not device_code:
            return jsonify({'success': False, 'error': 'deviceCode fehlt im Request-Body'}), 400

        try:
            result = auth.poll(device_code)
            response = {'success': result.success, 'status': result.status}
            if result.error:
                response['error'] = result.error
            return jsonify(response)
        except Exception as e:
            logger.error(f"Poll failed: {e}")
            return UIHelpers.error_response(e, status='error')

    @app.route('/api/dataverse/whoami')
    def whoami():
        """Verify the Dataverse connection for the signed-in user"""
        if not auth.is_authenticated():
            return jsonify({
                'success': False,
                'error': 'Nicht authentifiziert. Bitte zuerst anmelden unter /api/dataverse/auth/login'
            }), 401

        try:
            who = api.who_am_i()
            return jsonify({
                'success': True,
                'userId': who.get('UserId'),
                'businessUnitId': who.get('BusinessUnitId'),
                'organizationId': who.get('OrganizationId')
            })
        except Exception as e:
            logger.error(f"WhoAmI failed: {e}")
            return UIHelpers.error_response(e)

    # ========================================================================
    # VORHABEN ENDPOINTS
    # ========================================================================

    register_vorhaben_routes(app, auth, VorhabenService(api), BpfService(api))

    # ========================================================================
    # ERROR HANDLERS
    # ========================================================================

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'success': False, 'error': 'API endpoint not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    return app


app = create_app(os.getenv('FLASK_CONFIG', 'default'))

# ============================================================================
# APPLICATION STARTUP
# ============================================================================

if __name__ == '__main__':
    port = app.config['PORT']
    print("\n" + "="*70)
    print("🚀 LEITUNGSTEAM PLATFORM STARTING")
    print("="*70)
    print(f"🗄️  Dataverse: {app.config['DATAVERSE_URL'] or 'NOT CONFIGURED'}")
    print(f"🔑 Token cache: {app.config['TOKEN_CACHE_FILE'] or 'in-memory'}")
    print(f"🌐 Server starting on http://localhost:{port}")
    print(f"🔐 Login: http://localhost:{port}/api/dataverse/auth/login")
    print("="*70)

    app.run(host='127.0.0.1', port=port, debug=app.config.get('DEBUG', False))
