"""
Configuration settings for Leitungsteam Platform
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _default_token_cache_file():
    """Ephemeral hosts only offer /tmp, which does not survive cold starts"""
    if os.getenv('VERCEL') == '1' or os.getenv('EPHEMERAL_HOST') == '1':
        return '/tmp/dataverse-token-cache.json'
    return os.path.join(os.getcwd(), '.cache', 'dataverse-token-cache.json')


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Dataverse environment (resource the token is issued for)
    DATAVERSE_URL = os.getenv('DATAVERSE_URL', '').rstrip('/')
    DATAVERSE_API_VERSION = 'v9.2'

    # Azure AD device code flow (v1 endpoints, public client)
    AUTHORITY_HOST = 'https://login.microsoftonline.com'
    DATAVERSE_CLIENT_ID = os.getenv('DATAVERSE_CLIENT_ID', '04b07795-8ddb-461a-bbee-02f9e1bf7b46')
    DATAVERSE_TENANT_ID = os.getenv('DATAVERSE_TENANT_ID', 'common')

    # Token persistence
    TOKEN_CACHE_FILE = os.getenv('TOKEN_CACHE_FILE') or _default_token_cache_file()
    TOKEN_REFRESH_BUFFER_SECONDS = 5 * 60  # 5 minutes

    # Outbound HTTP
    HTTP_TIMEOUT = int(os.getenv('HTTP_TIMEOUT', 30))

    PORT = int(os.getenv('PORT', 5001))


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True
    DATAVERSE_URL = 'https://test-org.crm4.dynamics.com'
    TOKEN_CACHE_FILE = None  # in-memory store


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
