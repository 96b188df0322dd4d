# devoir_portal.py
# Consultation des devoirs et de leurs dépôts (lecture seule).
from __future__ import annotations

from ada import Controller
from models import Depose, Devoir, as_date


def _devoir_payload(devoir: dict, submissions: int) -> dict:
    deadline = as_date(devoir.get("datelimite"))
    return {
        "id": devoir["iddevoirs"],
        "shortcode": devoir["shortcode"],
        "datelimite": deadline.isoformat() if deadline else None,
        "is_open": not Devoir.is_past(devoir),
        "submission_count": submissions,
    }


class DevoirController(Controller):

    def __init__(self):
        self.devoirs = Devoir()
        self.deposes = Depose()

    def index(self, request):
        devoirs = self.devoirs.order_by("datelimite", "ASC").get()
        for devoir in devoirs:
            devoir["submission_count"] = self.deposes.count_by_devoir(devoir["iddevoirs"])
            devoir["is_past"] = Devoir.is_past(devoir)
        return self.view("devoirs.index", {
            "title": "All Assignments",
            "devoirs": devoirs,
        })

    def show(self, request, id):
        try:
            devoir_id = int(id)
        except (TypeError, ValueError):
            self.error404(f"Invalid assignment id: {id}")

        devoir = self.devoirs.find(devoir_id)
        if not devoir:
            self.error404("No assignment found")

        return self.view("devoirs.show", {
            "title": f"Assignment: {devoir['shortcode']}",
            "devoir": devoir,
            "submissions": self.deposes.get_by_devoir(devoir_id),
            "is_open": self.devoirs.is_open(devoir_id),
        })

    def upcoming(self, request):
        return self.view("devoirs.upcoming", {
            "title": "Upcoming Assignments",
            "devoirs": self.devoirs.get_upcoming(),
        })

    def api_index(self, request):
        devoirs = self.devoirs.order_by("datelimite", "ASC").get()
        return {
            "data": [
                _devoir_payload(d, self.deposes.count_by_devoir(d["iddevoirs"]))
                for d in devoirs
            ],
            "count": len(devoirs),
        }
