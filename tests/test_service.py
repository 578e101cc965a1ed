"""Tests for PersonalizationServicer (gRPC service layer)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import grpc
from google.protobuf import json_format, struct_pb2

from personalizer.context_store import VisitorRegistry
from personalizer.models import ContentType, RecommendationItem
from personalizer.service import (
    SERVICE_NAME,
    PersonalizationServicer,
    add_personalization_service_to_server,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _request(**fields) -> struct_pb2.Struct:
    message = struct_pb2.Struct()
    message.update(fields)
    return message


def _make_context() -> MagicMock:
    """Return a mock gRPC context."""
    ctx = MagicMock()
    ctx.set_code = MagicMock()
    ctx.set_details = MagicMock()
    return ctx


def _make_servicer(clock, scorer, picks=None, composer_raises: Exception | None = None):
    composer = MagicMock()
    if composer_raises:
        composer.recommend = AsyncMock(side_effect=composer_raises)
    else:
        composer.recommend = AsyncMock(return_value=picks or [
            RecommendationItem(ContentType.ABOUT, {"subtype": "about", "title": "About us"}, 10, "Get to know us"),
        ])
    composer.next_actions.return_value = ["Read about us to get to know the brand"]
    return PersonalizationServicer(VisitorRegistry(), composer, scorer, clock)


def _as_dict(message: struct_pb2.Struct) -> dict:
    return json_format.MessageToDict(message)


# ---------------------------------------------------------------------------
# TrackEvent
# ---------------------------------------------------------------------------


class TestTrackEvent:
    def test_page_lifecycle(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        ctx = _make_context()
        servicer.TrackEvent(_request(visitor_id="v1", event="page_enter", page="/stores"), ctx)
        clock.advance(seconds=30)
        result = servicer.TrackEvent(_request(visitor_id="v1", event="page_leave", page="/stores"), ctx)

        assert _as_dict(result) == {"accepted": True}
        snapshot = servicer._registry.get_or_create("v1").read()
        assert snapshot.page_views == 1
        assert snapshot.behavior.total_time_spent_seconds == 30.0
        ctx.set_code.assert_not_called()

    def test_same_aggregator_is_reused(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        servicer.TrackEvent(_request(visitor_id="v1", event="page_enter", page="/training"), _make_context())
        servicer.TrackEvent(_request(visitor_id="v1", event="scroll", depth=80), _make_context())
        snapshot = servicer._registry.get_or_create("v1").read()
        assert [i.category for i in snapshot.interests] == ["training"]

    def test_location_event(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        servicer.TrackEvent(
            _request(visitor_id="v1", event="location", coordinates=[102.71, 25.04], district="五华区"),
            _make_context(),
        )
        location = servicer._registry.get_or_create("v1").read().location
        assert location.coordinates == (102.71, 25.04)
        assert location.district == "五华区"
        assert location.city is None

    def test_click_search_hover(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        for fields in (
            {"event": "click", "target": "join"},
            {"event": "search", "query": "加盟"},
            {"event": "hover", "target": "price", "duration_ms": 1200},
        ):
            servicer.TrackEvent(_request(visitor_id="v1", **fields), _make_context())
        behavior = servicer._registry.get_or_create("v1").read().behavior
        assert behavior.clicked_elements == ("join",)
        assert behavior.search_queries == ("加盟",)
        assert behavior.interaction_count == 1.5

    def test_unknown_event_is_invalid_argument(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        ctx = _make_context()
        result = servicer.TrackEvent(_request(visitor_id="v1", event="teleport"), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)
        assert _as_dict(result) == {"accepted": False}

    def test_bad_scroll_depth_is_invalid_argument(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        servicer.TrackEvent(_request(visitor_id="v1", event="page_enter", page="/"), _make_context())
        ctx = _make_context()
        servicer.TrackEvent(_request(visitor_id="v1", event="scroll", depth=150), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)

    def test_missing_visitor_is_invalid_argument(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        ctx = _make_context()
        servicer.TrackEvent(_request(event="click", target="x"), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)

    def test_loaded_visitor_gets_a_fresh_aggregator(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        servicer.TrackEvent(_request(visitor_id="v1", event="click", target="old"), _make_context())
        servicer._registry.load("v1", {"visit_count": 2})
        servicer.TrackEvent(_request(visitor_id="v1", event="click", target="new"), _make_context())

        snapshot = servicer._registry.get_or_create("v1").read()
        assert snapshot.behavior.clicked_elements == ("new",)
        assert snapshot.visit_count == 3

    def test_forget_visitor(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        servicer.TrackEvent(_request(visitor_id="v1", event="page_enter", page="/"), _make_context())
        state = servicer.forget_visitor("v1")

        assert state["page_views"] == 1
        assert servicer._aggregators == {}
        assert servicer._registry.export_all() == {}
        assert servicer.forget_visitor("v1") is None

    def test_unexpected_error_is_internal(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        ctx = _make_context()
        with patch.object(servicer, "_aggregator_for", side_effect=RuntimeError("boom")):
            servicer.TrackEvent(_request(visitor_id="v1", event="click", target="x"), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INTERNAL)


# ---------------------------------------------------------------------------
# GetRecommendations
# ---------------------------------------------------------------------------


class TestGetRecommendations:
    def test_returns_picks_and_actions(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        result = _as_dict(servicer.GetRecommendations(_request(visitor_id="v1"), _make_context()))
        assert result["recommendations"][0]["content_type"] == "about"
        assert result["recommendations"][0]["priority"] == 10
        assert result["next_actions"] == ["Read about us to get to know the brand"]

    def test_empty_visitor_id(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        ctx = _make_context()
        servicer.GetRecommendations(_request(), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)
        servicer._composer.recommend.assert_not_called()

    def test_composer_error_is_internal(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer, composer_raises=RuntimeError("boom"))
        ctx = _make_context()
        result = servicer.GetRecommendations(_request(visitor_id="v1"), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INTERNAL)
        assert _as_dict(result) == {}

    def test_slow_call_logs_warning(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        with patch("personalizer.service._RECOMMENDATION_WARN_THRESHOLD_MS", -1):
            with patch("personalizer.service.logger") as mock_logger:
                servicer.GetRecommendations(_request(visitor_id="v1"), _make_context())
        mock_logger.warning.assert_called_once()


# ---------------------------------------------------------------------------
# ScoreContent / DescribeVisitor
# ---------------------------------------------------------------------------


class TestScoreContent:
    def test_scores_store_for_located_visitor(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        servicer.TrackEvent(
            _request(visitor_id="v1", event="location", coordinates=[102.71, 25.04], district="五华区"),
            _make_context(),
        )
        content = {
            "id": "7",
            "name": "耶氏台球(翠湖店)",
            "address": "云南省昆明市五华区翠湖公园附近",
            "coordinates": [102.71, 25.047],
            "business_hours": "09:00-22:00",
        }
        result = _as_dict(servicer.ScoreContent(_request(visitor_id="v1", content=content), _make_context()))
        assert result["content_type"] == "stores"
        assert result["components"]["location"] == 1.0
        assert result["score"] >= 0.55
        assert result["reasons"]

    def test_partial_training_scores_neutrally(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        ctx = _make_context()
        content = {"title": "Camp", "duration": "20h", "level": "pro", "schedule": [{"location": "x"}]}
        result = _as_dict(servicer.ScoreContent(_request(visitor_id="v1", content=content), ctx))
        ctx.set_code.assert_not_called()
        assert result["content_type"] == "training"
        assert result["components"]["temporal"] == 0.5
        assert 0.0 <= result["score"] <= 1.0
        assert result["reasons"]

    def test_unnamed_store_is_scored(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        ctx = _make_context()
        content = {"address": "x", "coordinates": [102.7, 25.0]}
        result = _as_dict(servicer.ScoreContent(_request(visitor_id="v1", content=content), ctx))
        ctx.set_code.assert_not_called()
        assert result["content_type"] == "stores"
        # visitor has no coordinates yet
        assert result["components"]["location"] == 0.3

    def test_coordinates_alone_do_not_make_a_store(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        content = {"title": "Brand story", "coordinates": [102.7, 25.0]}
        result = _as_dict(servicer.ScoreContent(_request(visitor_id="v1", content=content), _make_context()))
        assert result["content_type"] == "about"
        assert result["components"]["location"] == 0.5

    def test_non_mapping_content_is_invalid_argument(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        ctx = _make_context()
        servicer.ScoreContent(_request(visitor_id="v1", content="store"), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)


class TestDescribeVisitor:
    def test_new_visitor(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        result = _as_dict(servicer.DescribeVisitor(_request(visitor_id="v1"), _make_context()))
        assert result["journey_stage"] == "awareness"
        assert result["engagement_level"] == "low"
        assert result["show_call_to_action"] is False
        assert result["context"]["visit_count"] == 1

    def test_empty_visitor_id(self, clock, scorer) -> None:
        servicer = _make_servicer(clock, scorer)
        ctx = _make_context()
        servicer.DescribeVisitor(_request(), ctx)
        ctx.set_code.assert_called_once_with(grpc.StatusCode.INVALID_ARGUMENT)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegistration:
    def test_registers_generic_handler(self, clock, scorer) -> None:
        server = MagicMock()
        add_personalization_service_to_server(_make_servicer(clock, scorer), server)
        server.add_generic_rpc_handlers.assert_called_once()
        (handlers,), _ = server.add_generic_rpc_handlers.call_args
        assert handlers[0].service_name() == SERVICE_NAME
