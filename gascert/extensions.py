# gascert/extensions.py
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Bound to the app in create_app(); importable everywhere without an app.
db = SQLAlchemy()
migrate = Migrate()

# Single operator account; the user loader lives in gascert.auth.
login_manager = LoginManager()
login_manager.login_view = "auth.login"
login_manager.login_message = "Inicie sesión para acceder a la aplicación."
login_manager.login_message_category = "warning"
login_manager.session_protection = "basic"
