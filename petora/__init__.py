# petora/__init__.py

# =====================================================================================
# 1. Environment (loaded before anything reads os.getenv)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. Imports
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials

# - config / errors
from petora.core.config import config_by_name
from petora.core.errors import PetoraError, UnauthenticatedError

# - blueprints
from petora.api.auth.routes import auth_bp
from petora.api.users.routes import users_bp, admin_bp
from petora.api.listings.routes import listings_bp
from petora.api.strays.routes import strays_bp
from petora.api.groups.routes import groups_bp
from petora.api.posts.routes import posts_bp
from petora.api.uploads.routes import uploads_bp, images_bp
from petora.api.chatbot.routes import chatbot_bp

# - services
from petora.services.firestore_service import FirestoreService
from petora.services.storage_service import StorageService
from petora.services.identity_service import IdentityService
from petora.services.openai_service import OpenAIService
from petora.api.auth.services import AuthService
from petora.api.users.services import UserService
from petora.api.listings.services import ListingService
from petora.api.groups.services import CommunityService
from petora.api.posts.services import PostService


def _init_firebase(app: Flask):
    if firebase_admin._apps:
        return
    cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase credentials file not found: {cred_path}")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
    })


def _unauthenticated(message: str):
    return jsonify(UnauthenticatedError(message).to_dict()), 401


def create_app(config_name: str = None, services: dict = None):
    """
    Flask application factory.

    :param config_name: 'development', 'testing' or 'production'; defaults to $FLASK_ENV
    :param services: pre-built services keyed like ``app.services``; the rest are created here.
        Firebase is not initialised when 'db', 'storage' and 'identity' are all given.
    """
    # =====================================================================================
    # 3. App and config
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')
    overrides = dict(services or {})

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. Extensions and external services
    # =====================================================================================
    jwt = JWTManager(app)

    if not all(key in overrides for key in ('db', 'storage', 'identity')):
        _init_firebase(app)

    # =====================================================================================
    # 5. Services (one instance per concern, kept in app.services)
    # =====================================================================================
    app.services = {}

    # 5-1. gateways
    for key, factory in (('db', FirestoreService), ('storage', StorageService),
                         ('identity', IdentityService), ('openai', OpenAIService)):
        if key in overrides:
            app.services[key] = overrides.pop(key)
            continue
        try:
            instance = factory()
            instance.init_app(app)
            app.services[key] = instance
        except Exception as e:
            logging.error(f"Failed to initialize {key} service: {e}")
            raise

    app.services['storage'].configure_limits(app)

    # 5-2. domain services
    db = app.services['db']
    storage = app.services['storage']
    placeholder = app.config['PLACEHOLDER_IMAGE_URL']

    app.services['users'] = overrides.pop('users', None) or UserService(db)
    app.services['auth'] = overrides.pop('auth', None) or AuthService(db)
    app.services['listings'] = overrides.pop('listings', None) or ListingService(
        db, storage, app.services['users'], placeholder_image_url=placeholder
    )
    app.services['community'] = overrides.pop('community', None) or CommunityService(
        db, storage, placeholder_image_url=placeholder
    )
    app.services['posts'] = overrides.pop('posts', None) or PostService(db, storage)
    app.services.update(overrides)
    logging.info(f"Services ready: {sorted(app.services)}")

    # - token blocklist and auth failures
    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        return app.services['auth'].is_token_revoked(jwt_payload)

    @jwt.unauthorized_loader
    def missing_token_callback(reason):
        return _unauthenticated("Authentication is required.")

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        return _unauthenticated("The access token is invalid.")

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return _unauthenticated("The access token has expired.")

    @jwt.revoked_token_loader
    def revoked_token_callback(jwt_header, jwt_payload):
        return _unauthenticated("The access token has been revoked.")

    # =====================================================================================
    # 6. Blueprints
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(listings_bp, url_prefix='/api/pets')
    app.register_blueprint(strays_bp, url_prefix='/api/strays')
    app.register_blueprint(groups_bp, url_prefix='/api/groups')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    app.register_blueprint(uploads_bp, url_prefix='/api/uploads')
    app.register_blueprint(images_bp, url_prefix='/api/images')
    app.register_blueprint(chatbot_bp, url_prefix='/api/chatbot')

    # =====================================================================================
    # 7. Global error handlers
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(PetoraError)
    def handle_domain_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        if isinstance(err, HTTPException):
            return err
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "An unexpected error occurred."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. Logging
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
