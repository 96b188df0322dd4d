# home_pages.py
# Pages publiques : accueil, à propos, contact.
from __future__ import annotations

from ada import Controller
from ada.helpers import route
from ada.security import sanitize_array
from models import Devoir, User

FEATURES = [
    "MVC Architecture",
    "Simple Routing",
    "Template Engine",
    "Database Layer with SQLAlchemy",
    "Base Model with CRUD Operations",
    "CSRF Protection",
    "XSS Prevention",
    "Secure Session Management",
    "Input Sanitization & Validation",
]

PRINCIPLES = {
    "Small Core": "A handful of modules on top of werkzeug and SQLAlchemy",
    "Security First": "Built-in protection against XSS, CSRF, and SQL injection",
    "Developer Friendly": "Intuitive API with minimal learning curve",
    "Performance": "Compiled templates cached on disk",
}

CONTACT_RULES = {
    "name": "required|max:100",
    "email": "required|email|max:150",
    "message": "required|max:5000",
}

CONTACT_MESSAGES = {
    "name.required": "Name is required",
    "email.required": "Email is required",
    "email.email": "Please provide a valid email address",
    "message.required": "Message is required",
}


class HomeController(Controller):

    def index(self, request):
        upcoming = Devoir().get_upcoming()
        return self.view("home.index", {
            "title": "Welcome to ADA Framework",
            "heading": "Hello from the ADA Framework!",
            "message": "A lightweight MVC framework for Python web apps.",
            "features": FEATURES,
            "stats": {
                "users": User().count(),
                "devoirs": Devoir().count(),
                "upcoming": len(upcoming),
            },
            "upcoming": upcoming[:5],
        })

    def about(self, request):
        return self.view("home.about", {
            "title": "About ADA Framework",
            "heading": "About ADA",
            "description": "ADA is a micro framework built with security and simplicity in mind.",
            "principles": PRINCIPLES,
        })

    def contact(self, request):
        return self.view("home.contact", {
            "title": "Contact Us",
            "heading": "Get in Touch",
            "message": "Send us a message using the form below.",
        })

    def submit_contact(self, request):
        data = sanitize_array(
            {k: request.form.get(k, "") for k in CONTACT_RULES},
            strip_tags=True,
        )
        data = self.validate(request, CONTACT_RULES, CONTACT_MESSAGES,
                             data=data, redirect_to=route("contact"))

        # pas de stockage : le message est seulement journalisé
        self.logger.info("Contact message from %s <%s>", data["name"], data["email"])
        return self.redirect(route("contact")).with_flash(
            "success",
            f"Thank you, {data['name']}! Your message has been received. "
            f"We'll get back to you at {data['email']} soon.",
        )
