"""
HTML rendering for certificates and transactional emails.
All functions are pure: context in, markup out. Autoescape is always on.
"""

from datetime import datetime

from jinja2 import Environment, PackageLoader, select_autoescape

_env = Environment(
    loader=PackageLoader("skillcerts", "templates"),
    autoescape=select_autoescape(["html"]),
)


def render_certificate_html(user_name, course_title, instructor_name, completion_date, certificate_id) -> str:
    return _env.get_template("certificate.html").render(
        user_name=user_name,
        course_title=course_title,
        instructor_name=instructor_name,
        completion_date=completion_date,
        certificate_id=certificate_id,
    )


def render_certificate_not_found(certificate_id: str) -> str:
    return _env.get_template("certificate_not_found.html").render(certificate_id=certificate_id)


def render_payment_done_email(user_name, course_title, course_url, amount, currency="INR") -> str:
    return _env.get_template("emails/payment_done.html").render(
        user_name=user_name,
        course_title=course_title,
        course_url=course_url,
        amount=amount,
        currency=currency,
        year=datetime.utcnow().year,
    )


def render_certificate_issued_email(user_name, course_title, certificate_url, certificate_id) -> str:
    return _env.get_template("emails/certificate_issued.html").render(
        user_name=user_name,
        course_title=course_title,
        certificate_url=certificate_url,
        certificate_id=certificate_id,
        year=datetime.utcnow().year,
    )
