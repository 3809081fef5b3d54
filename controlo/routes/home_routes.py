from flask import Blueprint, render_template

from controlo.session_state import current_session


home_bp = Blueprint("home", __name__)


@home_bp.route("/")
def home():
    return render_template("index.html", authenticated=current_session().authenticated)
