"""Landing page of the web app."""

from flask import Blueprint, render_template

home_bp = Blueprint("home", __name__)


@home_bp.route("/", methods=["GET"])
def index():
    return render_template("home/index.html")
