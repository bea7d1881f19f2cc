import json
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import wraps

from flask import Flask, g, jsonify, request
from werkzeug.datastructures import MultiDict

from config import Config
from errors import RPCError, Unauthorized, ValidationError
from forms import CreateTaskForm, SignInForm, SignUpForm, TaskIdForm, UpdateTaskForm
from models import db
from security import PasswordHasher, TokenSigner
from services import AuthService, TaskService
from stores import SQLAlchemyTaskStore, SQLAlchemyUserStore


@dataclass
class Services:
    auth: AuthService
    tasks: TaskService
    tokens: TokenSigner


def create_app(config_object=None, *, user_store=None, task_store=None):
    """
    Application factory for the task manager RPC API.

    Every procedure lives at /rpc/<name>. Queries answer GET (input as JSON
    in the ``input`` query parameter) and POST (JSON body); mutations answer
    POST only. Results come back as {"result": {"data": ...}} and failures
    as {"error": {"code", "message"}}.

    Stores default to the SQLAlchemy-backed ones; tests may pass the
    in-memory stores instead.
    """
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize database
    db.init_app(app)

    if user_store is None:
        user_store = SQLAlchemyUserStore(db.session)
    if task_store is None:
        task_store = SQLAlchemyTaskStore(db.session)

    tokens = TokenSigner(app.config["SECRET_KEY"], app.config["TOKEN_MAX_AGE"])
    auth_service = AuthService(user_store, PasswordHasher(app.config["PASSWORD_HASH_METHOD"]), tokens)
    task_service = TaskService(task_store)
    app.extensions["todo"] = Services(auth=auth_service, tasks=task_service, tokens=tokens)

    # -----------------------------
    # Authentication helpers
    # -----------------------------

    def token_required(view_func):
        """
        Protects a procedure.

        The verified token claims are loaded into `g.claims` before every
        request; without them the call fails before any service code runs.
        """

        @wraps(view_func)
        def wrapped_view(*args, **kwargs):
            if g.claims is None:
                raise Unauthorized("Missing or invalid bearer token")
            return view_func(*args, **kwargs)

        return wrapped_view

    @app.before_request
    def load_token_claims():
        g.claims = None

        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return

        g.claims = tokens.verify(token.strip())
        if g.claims is None:
            app.logger.debug("Rejected bearer token on %s", request.path)

    # -----------------------------
    # Input helpers
    # -----------------------------

    def read_input():
        if request.method == "GET":
            raw = request.args.get("input")
            if raw is None:
                return {}
            try:
                return json.loads(raw)
            except ValueError:
                raise ValidationError("Input is not valid JSON")

        if not request.get_data():
            return {}
        payload = request.get_json(force=True, silent=True)
        if payload is None:
            raise ValidationError("Input must be a JSON object")
        return payload

    def validated(form_class):
        payload = read_input()
        if not isinstance(payload, dict):
            raise ValidationError("Input must be a JSON object")

        # Pairs keep list values as a single value
        form = form_class(MultiDict(list(payload.items())))
        if not form.validate():
            field, message = form.first_error()
            raise ValidationError(f"{field}: {message}", field=field)
        return form

    def ok(data):
        return jsonify({"result": {"data": data}})

    # -----------------------------
    # Public procedures
    # -----------------------------

    @app.route("/rpc/healthcheck", methods=["GET", "POST"])
    def healthcheck():
        return ok({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})

    @app.route("/rpc/signUp", methods=["POST"])
    def sign_up():
        form = validated(SignUpForm)
        result = auth_service.sign_up(form.username.data, form.email.data, form.password.data)
        return ok(result.to_dict())

    @app.route("/rpc/signIn", methods=["POST"])
    def sign_in():
        form = validated(SignInForm)
        result = auth_service.sign_in(form.email.data, form.password.data)
        return ok(result.to_dict())

    # -----------------------------
    # Protected procedures
    # -----------------------------

    @app.route("/rpc/createTask", methods=["POST"])
    @token_required
    def create_task():
        form = validated(CreateTaskForm)
        task = task_service.create(
            g.claims.user_id,
            form.title.data,
            description=form.description.data,
            due_date=form.due_date.data,
        )
        return ok(task.to_dict())

    @app.route("/rpc/getTasks", methods=["GET", "POST"])
    @token_required
    def get_tasks():
        tasks = task_service.list(g.claims.user_id)
        return ok([task.to_dict() for task in tasks])

    @app.route("/rpc/getTask", methods=["GET", "POST"])
    @token_required
    def get_task():
        form = validated(TaskIdForm)
        task = task_service.get(g.claims.user_id, form.id.data)
        return ok(task.to_dict())

    @app.route("/rpc/updateTask", methods=["POST"])
    @token_required
    def update_task():
        form = validated(UpdateTaskForm)
        task = task_service.update(g.claims.user_id, form.id.data, form.changes())
        return ok(task.to_dict())

    @app.route("/rpc/deleteTask", methods=["POST"])
    @token_required
    def delete_task():
        form = validated(TaskIdForm)
        deleted = task_service.delete(g.claims.user_id, form.id.data)
        return ok({"success": deleted})

    # -----------------------------
    # Error handlers
    # -----------------------------

    @app.errorhandler(RPCError)
    def rpc_error(error):
        app.logger.info("%s failed: %s %s", request.path, error.code, error.message)
        return jsonify({"error": error.to_dict()}), error.http_status

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": {"code": "NOT_FOUND", "message": "Unknown procedure"}}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        message = f"{request.method} is not supported by this procedure"
        return jsonify({"error": {"code": "METHOD_NOT_SUPPORTED", "message": message}}), 405

    @app.errorhandler(500)
    def internal_error(error):
        # Flask has already logged the original exception
        return jsonify({"error": RPCError().to_dict()}), 500

    return app


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        db.create_all()
    app.run(debug=True)
