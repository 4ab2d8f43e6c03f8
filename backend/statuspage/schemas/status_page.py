"""Public status page schemas."""
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field


class PublicHeartbeat(BaseModel):
    """A heartbeat (or a downsampled bucket) as shown on a timeline."""
    status: int  # 0=down, 1=up, 2=pending, 3=maintenance
    time: Optional[str] = None
    msg: str = ""
    ping: Optional[float] = None


class StatusPageConfig(BaseModel):
    """Public settings of a status page."""
    slug: str
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None
    footer_text: Optional[str] = Field(None, alias="footerText")
    heartbeat_bar_days: int = Field(0, alias="heartbeatBarDays")

    class Config:
        from_attributes = True
        populate_by_name = True


class PublicMonitor(BaseModel):
    id: int
    name: str


class PublicGroup(BaseModel):
    id: int
    name: str
    weight: int
    monitor_list: List[PublicMonitor] = Field(alias="monitorList")

    class Config:
        populate_by_name = True


class StatusPageResponse(BaseModel):
    """Status page config and its public monitor groups."""
    config: StatusPageConfig
    public_group_list: List[PublicGroup] = Field(alias="publicGroupList")

    class Config:
        populate_by_name = True


class HeartbeatListResponse(BaseModel):
    """Timeline data per monitor. Empty timeline slots are 0."""
    heartbeat_list: Dict[str, List[Union[PublicHeartbeat, int]]] = Field(alias="heartbeatList")
    uptime_list: Dict[str, float] = Field(alias="uptimeList")

    class Config:
        populate_by_name = True


class BadgeResponse(BaseModel):
    """Shields.io endpoint-badge payload."""
    schema_version: int = Field(1, alias="schemaVersion")
    label: str
    message: str
    color: str
    style: str = "flat"

    class Config:
        populate_by_name = True


class ManifestIcon(BaseModel):
    src: Optional[str] = None
    sizes: str = "128x128"
    type: str = "image/png"


class ManifestResponse(BaseModel):
    """Web app manifest for an installable status page."""
    name: str
    start_url: str
    display: str = "standalone"
    icons: List[ManifestIcon]
