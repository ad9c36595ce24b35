# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""WebSocket wire protocol: inbound tagged union and outbound messages.

Every frame is one JSON object with a ``type`` discriminator.  Field
names and enum literals are consumed by external dashboards and must
not change.
"""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from thermamind.data.models import (
    ChartPoint,
    Cluster,
    ClusterActivity,
    Node,
    NodeActivity,
    RegionSummary,
    StatsSnapshot,
)
from thermamind.engine.aggregator import chart_datasets
from thermamind.engine.simulation import TelemetryFrame


class MalformedMessage(ValueError):
    """An inbound frame could not be parsed or validated."""


def epoch_ms(moment: datetime | None = None) -> int:
    if moment is None:
        return int(time.time() * 1000)
    return int(moment.timestamp() * 1000)


# ---------------------------------------------------------------------------
# Inbound (client -> server)
# ---------------------------------------------------------------------------

class PingMessage(BaseModel):
    type: Literal["ping"]


class MuteMessage(BaseModel):
    type: Literal["mute"]


class UnmuteMessage(BaseModel):
    type: Literal["unmute"]


class GetMuteStateMessage(BaseModel):
    type: Literal["get-mute-state"]


class AskAIMessage(BaseModel):
    model_config = {"populate_by_name": True}

    type: Literal["ask_ai"]
    with_audio: bool = Field(default=False, alias="withAudio")


class AskQuestionMessage(BaseModel):
    model_config = {"populate_by_name": True}

    type: Literal["ask_question"]
    question: str = Field(..., min_length=1, max_length=2000)
    with_audio: bool = Field(default=False, alias="withAudio")


InboundMessage = Annotated[
    Union[
        PingMessage,
        MuteMessage,
        UnmuteMessage,
        GetMuteStateMessage,
        AskAIMessage,
        AskQuestionMessage,
    ],
    Field(discriminator="type"),
]

_INBOUND_ADAPTER: TypeAdapter[Any] = TypeAdapter(InboundMessage)

INBOUND_TYPES = frozenset(
    {"ping", "mute", "unmute", "get-mute-state", "ask_ai", "ask_question"}
)


def parse_inbound(raw: str | bytes | dict) -> BaseModel | None:
    """Parse one inbound frame.

    Returns ``None`` for well-formed frames of an unknown kind so newer
    clients keep working.

    Raises
    ------
    MalformedMessage
        If the frame is not a JSON object with a string ``type`` or a
        known kind fails validation.
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedMessage(f"invalid JSON: {exc}") from None
    else:
        data = raw

    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise MalformedMessage("frame must be an object with a string 'type'")
    if data["type"] not in INBOUND_TYPES:
        return None
    try:
        return _INBOUND_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise MalformedMessage(str(exc)) from None


# ---------------------------------------------------------------------------
# Telemetry payload
# ---------------------------------------------------------------------------

class StatsView(BaseModel):
    model_config = {"populate_by_name": True}

    energy_savings: float = Field(..., alias="energySavings")
    co2_offset_kg: int = Field(..., alias="co2OffsetKg")
    power_draw_mw: float = Field(..., alias="powerDrawMW")
    cooling_pue: float = Field(..., alias="coolingPUE")

    @classmethod
    def from_stats(cls, stats: StatsSnapshot) -> "StatsView":
        return cls(
            energy_savings=stats.energy_savings_pct,
            co2_offset_kg=stats.co2_offset_kg,
            power_draw_mw=stats.power_draw_mw,
            cooling_pue=stats.cooling_pue,
        )


class ChartDataset(BaseModel):
    label: str
    data: list[float]


class ChartView(BaseModel):
    labels: list[str] = Field(default_factory=list)
    datasets: list[ChartDataset] = Field(default_factory=list)


class ClusterView(BaseModel):
    name: str
    status: ClusterActivity
    gpu: int
    cooling: int
    power: float


class NodeView(BaseModel):
    model_config = {"populate_by_name": True}

    id: int
    label: str
    state: NodeActivity
    cluster_name: str = Field(..., alias="clusterName")
    gpu_load: int = Field(..., alias="gpuLoad")
    temperature: float
    status: str


class RegionView(BaseModel):
    model_config = {"populate_by_name": True}

    data_center: str = Field(..., alias="dataCenter")
    site_count: int = Field(..., alias="siteCount")
    avg_gpu_load: int = Field(..., alias="avgGpuLoad")
    avg_cooling: int = Field(..., alias="avgCooling")
    avg_power_usage: int = Field(..., alias="avgPowerUsage")
    avg_temperature: float = Field(..., alias="avgTemperature")
    online_clusters: int = Field(..., alias="onlineClusters")
    offline_clusters: int = Field(..., alias="offlineClusters")
    active_spikes: int = Field(..., alias="activeSpikes")

    @classmethod
    def from_summary(cls, summary: RegionSummary) -> "RegionView":
        return cls(
            data_center=summary.data_center,
            site_count=summary.site_count,
            avg_gpu_load=summary.avg_gpu_load,
            avg_cooling=summary.avg_cooling,
            avg_power_usage=summary.avg_power_kw,
            avg_temperature=summary.avg_temperature_c,
            online_clusters=summary.online_clusters,
            offline_clusters=summary.offline_clusters,
            active_spikes=summary.active_spikes,
        )


class TelemetryPayload(BaseModel):
    timestamp: int = Field(..., description="Epoch milliseconds")
    stats: StatsView
    chart: ChartView
    clusters: list[ClusterView]
    nodes: list[NodeView]
    regions: list[RegionView] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Outbound (server -> client)
# ---------------------------------------------------------------------------

class TelemetryMessage(BaseModel):
    type: Literal["telemetry"] = "telemetry"
    payload: TelemetryPayload


class PongMessage(BaseModel):
    type: Literal["pong"] = "pong"
    time: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class MuteStateMessage(BaseModel):
    type: Literal["mute-state"] = "mute-state"
    muted: bool


class AIResponseMessage(BaseModel):
    type: Literal["ai_response"] = "ai_response"
    text: str
    audio: str | None = None
    timestamp: int = Field(default_factory=epoch_ms)


class AIAnswerMessage(BaseModel):
    type: Literal["ai_answer"] = "ai_answer"
    question: str
    answer: str
    audio: str | None = None
    timestamp: int = Field(default_factory=epoch_ms)


class AIErrorMessage(BaseModel):
    type: Literal["ai_error"] = "ai_error"
    error: str


def dump_message(message: BaseModel) -> dict:
    """JSON-ready dict using wire field names; unset optionals are omitted."""
    return message.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def cluster_view(cluster: Cluster) -> ClusterView:
    return ClusterView(
        name=cluster.name,
        status=cluster.activity,
        gpu=round(cluster.avg_gpu_load),
        cooling=round(cluster.avg_cooling),
        power=round(cluster.total_power_kw, 2),
    )


def node_view(node: Node) -> NodeView:
    return NodeView(
        id=node.id,
        label=node.label,
        state=node.activity,
        cluster_name=node.cluster_name,
        gpu_load=node.gpu_load,
        temperature=node.temperature_c,
        status=node.status.value,
    )


def chart_view(points: list[ChartPoint]) -> ChartView:
    return ChartView.model_validate(chart_datasets(points))


def build_telemetry_payload(frame: TelemetryFrame) -> TelemetryPayload:
    """Package one engine frame into the wire payload."""
    snapshot = frame.snapshot
    return TelemetryPayload(
        timestamp=epoch_ms(snapshot.timestamp),
        stats=StatsView.from_stats(frame.stats),
        chart=chart_view(frame.chart),
        clusters=[cluster_view(c) for c in snapshot.clusters],
        nodes=[node_view(n) for n in snapshot.nodes],
        regions=[RegionView.from_summary(r) for r in frame.regions],
    )
