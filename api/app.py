"""
ReliefGrid API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support,
configures middleware, and wires the services behind the disaster relief
coordination API.
"""

import os
from typing import Any, Dict, Optional
from flask_openapi3 import OpenAPI, Info, Tag

from observability.config import setup_observability
from observability.middleware import add_observability_middleware
from middleware.cors import configure_cors
from middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from middleware.auth import AuthMiddleware
from services.accounts import AccountService
from services.auth import AuthService
from services.chain import SolanaRpcClient, DEFAULT_RPC_URL, DEFAULT_USDC_MINT
from services.fanout import NotificationFanout
from services.hal import create_hal_formatter
from services.health import HealthCheckService
from services.ledger import WalletLedger
from services.mongodb import MongoDBService
from services.redis import RedisService
from services.store import EntityStore
from services.workflow import WorkflowCoordinator

info = Info(
    title="ReliefGrid API",
    version="1.0.0",
    description="Disaster relief coordination between residents, fire stations and NGOs with HATEOAS Level-3 support"
)

tags = [
    Tag(name="Authentication", description="Account registration and token management"),
    Tag(name="Users", description="Fire stations, NGOs and account lookup"),
    Tag(name="Resource Requests", description="Supply requests raised by fire stations"),
    Tag(name="Donations", description="Resource and monetary donations"),
    Tag(name="Volunteers", description="Resident volunteer registrations"),
    Tag(name="Emergencies", description="Emergency reports and alerts"),
    Tag(name="Notifications", description="Per-user notification inbox"),
    Tag(name="Resources", description="Station and NGO inventory"),
    Tag(name="Wallet", description="Wallet balance and chain relay"),
    Tag(name="Health", description="System health and status")
]


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


def load_config() -> Dict[str, Any]:
    """Read application configuration from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')
    return {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'DOCS_ENABLED': _env_flag('DOCS_ENABLED', 'true'),
        'OTEL_ENABLED': _env_flag('OTEL_ENABLED', 'false'),
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000'),
        'CORS_ORIGINS': os.getenv('CORS_ORIGINS', ''),

        # Database configuration
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/reliefgrid_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'reliefgrid_dev'),
        'MONGODB_TRANSACTIONS': _env_flag('MONGODB_TRANSACTIONS', 'false'),

        # Token blocklist
        'REDIS_URL': os.getenv('REDIS_URL', ''),
        'REDIS_TOKEN': os.getenv('REDIS_TOKEN', ''),

        # Security configuration
        'JWT_PRIVATE_KEY': os.getenv('JWT_PRIVATE_KEY'),
        'JWT_PUBLIC_KEY': os.getenv('JWT_PUBLIC_KEY'),
        'JWT_ACCESS_TOKEN_EXPIRE_MINUTES': int(os.getenv('JWT_ACCESS_TOKEN_EXPIRE_MINUTES', '15')),
        'JWT_REFRESH_TOKEN_EXPIRE_DAYS': int(os.getenv('JWT_REFRESH_TOKEN_EXPIRE_DAYS', '7')),

        # Workflow behavior
        'ALLOW_NEGATIVE_WALLET_BALANCE': _env_flag('ALLOW_NEGATIVE_WALLET_BALANCE', 'true'),
        'NOTIFY_STATION_RESIDENTS': _env_flag('NOTIFY_STATION_RESIDENTS', 'true'),

        # Chain RPC
        'SOLANA_RPC_URL': os.getenv('SOLANA_RPC_URL', DEFAULT_RPC_URL),
        'SOLANA_USDC_MINT': os.getenv('SOLANA_USDC_MINT', DEFAULT_USDC_MINT),
        'SOLANA_RPC_TIMEOUT': float(os.getenv('SOLANA_RPC_TIMEOUT', '10'))
    }


def create_app(config: Optional[Dict[str, Any]] = None, mongodb_service=None, store=None,
               redis_service=None, auth_service=None, chain_client=None) -> OpenAPI:
    """
    Build the Flask application.

    Args:
        config: Overrides applied on top of the environment configuration
        mongodb_service: MongoDB service (built from config when omitted)
        store: Entity store (an EntityStore over mongodb_service when omitted)
        redis_service: Token blocklist service (built from config when omitted)
        auth_service: JWT service (built from config when omitted)
        chain_client: Chain RPC client (built from config when omitted)

    Returns:
        Configured application
    """
    settings = load_config()
    settings.update(config or {})

    setup_observability(settings['ENVIRONMENT'], settings['OTEL_ENABLED'])

    app = OpenAPI(__name__, info=info)
    app.config.update(settings)

    add_observability_middleware(app, instrument=settings['OTEL_ENABLED'])

    if store is None:
        if mongodb_service is None:
            mongodb_service = MongoDBService(
                settings['MONGODB_URI'],
                settings['MONGODB_DATABASE'],
                settings['MONGODB_TRANSACTIONS']
            )
        store = EntityStore(mongodb_service)

    if redis_service is None and settings['REDIS_URL']:
        redis_service = RedisService(settings['REDIS_URL'], settings['REDIS_TOKEN'])

    if auth_service is None:
        auth_service = AuthService(
            settings['JWT_PRIVATE_KEY'],
            settings['JWT_PUBLIC_KEY'],
            settings['JWT_ACCESS_TOKEN_EXPIRE_MINUTES'],
            settings['JWT_REFRESH_TOKEN_EXPIRE_DAYS']
        )

    if chain_client is None and settings['SOLANA_RPC_URL']:
        chain_client = SolanaRpcClient(
            settings['SOLANA_RPC_URL'],
            settings['SOLANA_USDC_MINT'],
            settings['SOLANA_RPC_TIMEOUT']
        )

    ledger = WalletLedger(store, allow_negative=settings['ALLOW_NEGATIVE_WALLET_BALANCE'])
    workflow = WorkflowCoordinator(
        store,
        fanout=NotificationFanout(store),
        ledger=ledger,
        notify_station_residents=settings['NOTIFY_STATION_RESIDENTS']
    )

    hal_formatter = create_hal_formatter(settings['BASE_URL'])
    ErrorHandlerMiddleware(app, hal_formatter)
    register_custom_error_handlers(app, hal_formatter)
    configure_cors(app, allow_credentials=True)

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.store = store
    app.redis_service = redis_service
    app.auth_service = auth_service
    app.auth_middleware = AuthMiddleware(auth_service, redis_service)
    app.accounts = AccountService(store, auth_service)
    app.ledger = ledger
    app.workflow = workflow
    app.chain_client = chain_client
    app.hal_formatter = hal_formatter
    app.health_service = HealthCheckService(mongodb_service, redis_service)

    from routes.auth import auth_bp
    from routes.users import users_bp
    from routes.resource_requests import resource_requests_bp
    from routes.donations import donations_bp
    from routes.volunteers import volunteers_bp
    from routes.emergencies import emergencies_bp
    from routes.notifications import notifications_bp
    from routes.resources import resources_bp
    from routes.wallet import wallet_bp
    from routes.health import health_bp

    for blueprint in (auth_bp, users_bp, resource_requests_bp, donations_bp, volunteers_bp,
                      emergencies_bp, notifications_bp, resources_bp, wallet_bp, health_bp):
        app.register_api(blueprint)

    return app


if __name__ == '__main__':
    # Development server
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['DEBUG']
    )
