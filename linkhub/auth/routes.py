from flask import flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user

from linkhub.auth import auth_bp
from linkhub.extensions import db
from linkhub.models import User


def _credentials_from_form() -> tuple[str, str]:
    return (request.form.get("username") or "").strip(), request.form.get("password") or ""


def _bootstrap_error(username: str, password: str) -> str | None:
    if not username or not password:
        return "Username and password are required."
    if password != (request.form.get("confirm_password") or ""):
        return "Passwords do not match."
    return None


@auth_bp.route("/bootstrap", methods=["GET", "POST"])
def bootstrap_admin():
    """First-run page: creates the hub owner's account."""
    if User.query.count() > 0:
        return redirect(url_for("auth.login"))

    if request.method == "POST":
        username, password = _credentials_from_form()
        error = _bootstrap_error(username, password)
        if error:
            flash(error, "error")
        else:
            owner = User(username=username, is_admin=True, is_active=True)
            owner.set_password(password)
            db.session.add(owner)
            db.session.commit()
            flash("Account created. Sign in to start editing links.", "success")
            return redirect(url_for("auth.login"))

    return render_template("bootstrap.html")


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("web.hub"))
    if User.query.count() == 0:
        return redirect(url_for("auth.bootstrap_admin"))

    if request.method == "POST":
        username, password = _credentials_from_form()
        user = User.query.filter_by(username=username).first()
        if user is not None and user.is_active and user.check_password(password):
            login_user(user)
            return redirect(url_for("web.hub"))
        flash("Invalid credentials.", "error")

    return render_template("login.html")


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return redirect(url_for("web.hub"))
