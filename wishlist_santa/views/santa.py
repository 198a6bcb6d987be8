from __future__ import annotations

from flask import Blueprint, jsonify

from ..forms import EventCreateForm, EventUpdateForm, InviteForm
from ..policies import ProfileRequiredMixin
from ..serializers import event_payload, participant_payload
from ..services import assignments, events, lifecycle

santa_bp = Blueprint("santa", __name__, url_prefix="/secret-santa")


class PendingInvitationCountView(ProfileRequiredMixin):
    def get(self):
        return jsonify({"count": events.pending_invitation_count(self.actor_id)})


class EventListView(ProfileRequiredMixin):
    def get(self):
        found = events.list_events(self.actor_id)
        return jsonify([event_payload(e, self.actor_id) for e in found])

    def post(self):
        form = EventCreateForm().validated()
        event = events.create_event(
            self.actor_id,
            title=form.title.data,
            draw_date=form.draw_date.data,
            exchange_date=form.exchange_date.data,
            budget=form.budget.data,
            currency=form.currency.data or None,
            participant_ids=form.participant_ids.data,
        )
        return jsonify(event_payload(event, self.actor_id)), 201


class EventDetailView(ProfileRequiredMixin):
    def get(self, event_id: int):
        event = events.get_event(self.actor_id, event_id)
        return jsonify(event_payload(event, self.actor_id))

    def patch(self, event_id: int):
        form = EventUpdateForm().validated()
        event = events.update_event(self.actor_id, event_id, **form.changes())
        return jsonify(event_payload(event, self.actor_id))

    def delete(self, event_id: int):
        events.delete_event(self.actor_id, event_id)
        return jsonify({"message": "Event deleted successfully"})


class ParticipantListView(ProfileRequiredMixin):
    def get(self, event_id: int):
        found = events.list_participants(self.actor_id, event_id)
        return jsonify([participant_payload(p) for p in found])


class InviteParticipantView(ProfileRequiredMixin):
    def post(self, event_id: int):
        form = InviteForm().validated()
        events.invite_participant(self.actor_id, event_id, form.user_id.data)
        return jsonify({"message": "Invitation sent"}), 201


class AcceptInvitationView(ProfileRequiredMixin):
    def post(self, event_id: int):
        events.accept_invitation(self.actor_id, event_id)
        return jsonify({"message": "Invitation accepted"})


class DeclineInvitationView(ProfileRequiredMixin):
    def post(self, event_id: int):
        events.decline_invitation(self.actor_id, event_id)
        return jsonify({"message": "Invitation declined"})


class ParticipantDetailView(ProfileRequiredMixin):
    def delete(self, event_id: int, user_id: int):
        events.remove_participant(self.actor_id, event_id, user_id)
        return jsonify({"message": "Participant removed"})


class DrawNamesView(ProfileRequiredMixin):
    def post(self, event_id: int):
        drawn = assignments.draw_names(self.actor_id, event_id)
        return jsonify({"message": "Names drawn successfully", "assignmentCount": len(drawn)})


class MyAssignmentView(ProfileRequiredMixin):
    def get(self, event_id: int):
        return jsonify(assignments.get_my_assignment(self.actor_id, event_id))


class RevealAssignmentView(ProfileRequiredMixin):
    def post(self, event_id: int):
        return jsonify(assignments.reveal_assignment(self.actor_id, event_id))


class AllAssignmentsView(ProfileRequiredMixin):
    def get(self, event_id: int):
        return jsonify(assignments.get_all_assignments(self.actor_id, event_id))


class ProgressView(ProfileRequiredMixin):
    def get(self, event_id: int):
        return jsonify(lifecycle.get_progress(self.actor_id, event_id))


class CompleteEventView(ProfileRequiredMixin):
    def post(self, event_id: int):
        lifecycle.mark_as_completed(self.actor_id, event_id)
        return jsonify({"message": "Event marked as completed"})


# Register routes
santa_bp.add_url_rule("/invitations/pending/count", view_func=PendingInvitationCountView.as_view("pending_invitation_count"))

santa_bp.add_url_rule("/events", view_func=EventListView.as_view("events"), methods=["GET", "POST"])
santa_bp.add_url_rule(
    "/events/<int:event_id>",
    view_func=EventDetailView.as_view("event_detail"),
    methods=["GET", "PATCH", "DELETE"],
)

santa_bp.add_url_rule("/events/<int:event_id>/participants", view_func=ParticipantListView.as_view("participants"))
santa_bp.add_url_rule(
    "/events/<int:event_id>/participants/invite",
    view_func=InviteParticipantView.as_view("invite_participant"),
    methods=["POST"],
)
santa_bp.add_url_rule(
    "/events/<int:event_id>/participants/accept",
    view_func=AcceptInvitationView.as_view("accept_invitation"),
    methods=["POST"],
)
santa_bp.add_url_rule(
    "/events/<int:event_id>/participants/decline",
    view_func=DeclineInvitationView.as_view("decline_invitation"),
    methods=["POST"],
)
santa_bp.add_url_rule(
    "/events/<int:event_id>/participants/<int:user_id>",
    view_func=ParticipantDetailView.as_view("participant_detail"),
    methods=["DELETE"],
)

santa_bp.add_url_rule("/events/<int:event_id>/draw", view_func=DrawNamesView.as_view("draw_names"), methods=["POST"])
santa_bp.add_url_rule("/events/<int:event_id>/assignment", view_func=MyAssignmentView.as_view("my_assignment"))
santa_bp.add_url_rule(
    "/events/<int:event_id>/assignment/reveal",
    view_func=RevealAssignmentView.as_view("reveal_assignment"),
    methods=["POST"],
)
santa_bp.add_url_rule("/events/<int:event_id>/assignments", view_func=AllAssignmentsView.as_view("all_assignments"))

santa_bp.add_url_rule("/events/<int:event_id>/progress", view_func=ProgressView.as_view("progress"))
santa_bp.add_url_rule("/events/<int:event_id>/complete", view_func=CompleteEventView.as_view("complete_event"), methods=["POST"])
