"""gRPC servicer: the entry point for all calls from the site front end.

Messages are ``google.protobuf.Struct`` on both sides, so the service is
registered through a generic handler rather than generated stubs.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Callable

import grpc
from google.protobuf import json_format, struct_pb2

import config
from personalizer.aggregator import BehaviorAggregator
from personalizer.catalogue import content_from_dict
from personalizer.clock import Clock
from personalizer.composer import RecommendationComposer
from personalizer.content import classify
from personalizer.context_store import VisitorRegistry
from personalizer.inference import coherence, infer_engagement_level, infer_journey_stage
from personalizer.models import Coordinate
from personalizer.scorer import ResonanceScorer
from personalizer.sorting import should_show_call_to_action

logger = logging.getLogger(__name__)

SERVICE_NAME = "personalization.PersonalizationService"

_RECOMMENDATION_WARN_THRESHOLD_MS = config.RECOMMENDATION_SLA_MS - 50  # warn if within 50ms of SLA


class PersonalizationServicer:
    """Implements ``personalization.PersonalizationService``.

    ==================  ==========================================================
    Method              Request fields
    ==================  ==========================================================
    TrackEvent          ``visitor_id``, ``event`` and the event's fields
    GetRecommendations  ``visitor_id``
    ScoreContent        ``visitor_id``, ``content`` (see ``content_from_dict``)
    DescribeVisitor     ``visitor_id``
    ==================  ==========================================================

    ``TrackEvent`` events: ``page_enter``/``page_leave`` (``page``),
    ``scroll`` (``depth``), ``click`` (``target``), ``search`` (``query``),
    ``hover`` (``target``, ``duration_ms``) and ``location``
    (``coordinates``, ``district``, ``city``).

    Args:
        registry: Per-visitor context stores.
        composer: The :class:`~personalizer.composer.RecommendationComposer`.
        scorer: The :class:`~personalizer.scorer.ResonanceScorer`.
        clock: Clock handed to each visitor's aggregator.
    """

    def __init__(
        self,
        registry: VisitorRegistry,
        composer: RecommendationComposer,
        scorer: ResonanceScorer,
        clock: Clock | None = None,
    ) -> None:
        self._registry = registry
        self._composer = composer
        self._scorer = scorer
        self._clock = clock
        self._lock = threading.Lock()
        self._aggregators: dict[str, BehaviorAggregator] = {}

    # ------------------------------------------------------------------
    # Event ingestion
    # ------------------------------------------------------------------

    def TrackEvent(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Feed one front-end event into the visitor's aggregator.

        Returns:
            ``{"accepted": bool}``.
        """
        data = _to_dict(request)
        visitor_id = data.get("visitor_id", "")
        try:
            aggregator = self._aggregator_for(visitor_id)
            self._apply_event(aggregator, data)
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return _to_struct({"accepted": False})
        except Exception:
            logger.exception(
                "Error tracking event %r for visitor=%r", data.get("event"), visitor_id
            )
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error tracking event.")
            return _to_struct({"accepted": False})
        return _to_struct({"accepted": True})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def GetRecommendations(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Return ordered recommendations and next actions for a visitor.

        Returns:
            ``{"recommendations": [...], "next_actions": [...]}``.
        """
        data = _to_dict(request)
        visitor_id = data.get("visitor_id", "")
        if not visitor_id:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details("visitor_id must be non-empty")
            return struct_pb2.Struct()

        start_ms = time.monotonic() * 1000
        try:
            snapshot = self._registry.get_or_create(visitor_id).read()
            picks = asyncio.run(self._composer.recommend(snapshot))
            actions = self._composer.next_actions(snapshot)
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return struct_pb2.Struct()
        except Exception:
            logger.exception(
                "Unexpected error generating recommendations for visitor=%r", visitor_id
            )
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error generating recommendations.")
            return struct_pb2.Struct()
        finally:
            elapsed_ms = time.monotonic() * 1000 - start_ms
            if elapsed_ms > _RECOMMENDATION_WARN_THRESHOLD_MS:
                logger.warning(
                    "GetRecommendations for visitor=%r took %.1fms (SLA: %dms)",
                    visitor_id,
                    elapsed_ms,
                    config.RECOMMENDATION_SLA_MS,
                )
            else:
                logger.debug(
                    "GetRecommendations for visitor=%r took %.1fms", visitor_id, elapsed_ms
                )

        return _to_struct(
            {
                "recommendations": [pick.to_dict() for pick in picks],
                "next_actions": actions,
            }
        )

    def ScoreContent(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Score a single content item against the visitor's context."""
        data = _to_dict(request)
        visitor_id = data.get("visitor_id", "")
        try:
            snapshot = self._registry.get_or_create(visitor_id).read()
            content = content_from_dict(data.get("content") or {})
            result = self._scorer.calculate(snapshot, content)
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return struct_pb2.Struct()
        except Exception:
            logger.exception("Error scoring content for visitor=%r", visitor_id)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error scoring content.")
            return struct_pb2.Struct()

        response = result.to_dict()
        content_type = classify(content)
        response["content_type"] = content_type.value if content_type else None
        return _to_struct(response)

    def DescribeVisitor(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Return the visitor's context plus the signals derived from it."""
        data = _to_dict(request)
        visitor_id = data.get("visitor_id", "")
        try:
            store = self._registry.get_or_create(visitor_id)
        except ValueError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return struct_pb2.Struct()

        snapshot = store.read()
        return _to_struct(
            {
                "context": store.export_state(),
                "journey_stage": infer_journey_stage(snapshot).value,
                "engagement_level": infer_engagement_level(snapshot).value,
                "coherence": coherence(snapshot),
                "show_call_to_action": should_show_call_to_action(snapshot),
            }
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def forget_visitor(self, visitor_id: str) -> dict[str, Any] | None:
        """Evict *visitor_id* and return its exported context, if any."""
        with self._lock:
            self._aggregators.pop(visitor_id, None)
        return self._registry.remove(visitor_id)

    def _aggregator_for(self, visitor_id: str) -> BehaviorAggregator:
        store = self._registry.get_or_create(visitor_id)
        with self._lock:
            aggregator = self._aggregators.get(visitor_id)
            # The registry replaces stores on load; rebind to the live one.
            if aggregator is None or aggregator.store is not store:
                aggregator = BehaviorAggregator(store, self._clock)
                self._aggregators[visitor_id] = aggregator
            return aggregator

    @staticmethod
    def _apply_event(aggregator: BehaviorAggregator, data: dict[str, Any]) -> None:
        event = data.get("event")
        if event == "page_enter":
            aggregator.on_page_enter(_require_str(data, "page"))
        elif event == "page_leave":
            aggregator.on_page_leave(_require_str(data, "page"))
        elif event == "scroll":
            aggregator.on_scroll(float(data.get("depth", 0.0)))
        elif event == "click":
            aggregator.on_click(_require_str(data, "target"))
        elif event == "search":
            aggregator.on_search(str(data.get("query", "")))
        elif event == "hover":
            aggregator.on_hover(_require_str(data, "target"), float(data.get("duration_ms", 0.0)))
        elif event == "location":
            aggregator.update_location(
                coordinates=_coordinate(data.get("coordinates")),
                district=data.get("district") or None,
                city=data.get("city") or None,
            )
        else:
            raise ValueError(f"Unknown event {event!r}")


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

_METHODS = ("TrackEvent", "GetRecommendations", "ScoreContent", "DescribeVisitor")


def add_personalization_service_to_server(
    servicer: PersonalizationServicer,
    server: grpc.Server,
) -> None:
    """Register *servicer*'s methods on *server* under :data:`SERVICE_NAME`."""
    handlers: dict[str, grpc.RpcMethodHandler] = {}
    for method in _METHODS:
        behavior: Callable[[struct_pb2.Struct, Any], struct_pb2.Struct] = getattr(servicer, method)
        handlers[method] = grpc.unary_unary_rpc_method_handler(
            behavior,
            request_deserializer=struct_pb2.Struct.FromString,
            response_serializer=struct_pb2.Struct.SerializeToString,
        )
    server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),)
    )


# ---------------------------------------------------------------------------
# Struct helpers
# ---------------------------------------------------------------------------


def _to_dict(message: struct_pb2.Struct) -> dict[str, Any]:
    return json_format.MessageToDict(message)


def _to_struct(data: dict[str, Any]) -> struct_pb2.Struct:
    message = struct_pb2.Struct()
    message.update(data)
    return message


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not value:
        raise ValueError(f"{key!r} must be non-empty")
    return str(value)


def _coordinate(value: Any) -> Coordinate | None:
    if value is None:
        return None
    if not isinstance(value, list) or len(value) != 2:
        raise ValueError(f"coordinates must be a [lon, lat] pair, got {value!r}")
    return (float(value[0]), float(value[1]))
