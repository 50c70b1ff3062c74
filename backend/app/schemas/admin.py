from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class TicketMetrics(BaseModel):
    total: int
    pending: int
    in_progress: int
    completed: int
    avg_resolution_hours: float


class TicketTrend(BaseModel):
    date: str
    label: str
    count: int


class CommonIssue(BaseModel):
    subject: str
    count: int
    percentage: float


class StaffPerformance(BaseModel):
    id: str
    name: str
    email: str
    tickets_handled: int
    avg_response_minutes: float
    resolved_count: int
    resolution_rate: float


class AnalyticsResponse(BaseModel):
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    status: str
    staff_id: Optional[str] = None
    metrics: TicketMetrics
    trends: List[TicketTrend]
    common_issues: List[CommonIssue]
    staff_performance: List[StaffPerformance]


class StaffMember(BaseModel):
    id: str
    name: str
    email: str

    class Config:
        from_attributes = True


class AuditLogResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    action: str
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
