"""
Report routes
"""
from datetime import date, timedelta
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from roomledger.dependencies import get_report_service
from roomledger.models.schemas import (
    ForwardOccupancy, MemberActivityReport, MemberLifetimeValue, OccupancySummary,
)
from roomledger.services import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/member-activity/{member_id}", response_model=MemberActivityReport)
def get_member_activity(member_id: int, service: ReportService = Depends(get_report_service)):
    """Bookings and payments of one member"""
    report = service.get_member_activity(member_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No such member: {member_id}")
    return MemberActivityReport(**report)


@router.get("/occupancy", response_model=OccupancySummary)
def get_occupancy_summary(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    service: ReportService = Depends(get_report_service),
):
    """Occupancy by room type and room over [start_date, end_date); defaults to the next 30 days"""
    start_date = start_date or date.today()
    end_date = end_date or start_date + timedelta(days=30)
    return OccupancySummary(**service.get_occupancy_summary(start_date, end_date))


@router.get("/member-lifetime-value", response_model=List[MemberLifetimeValue])
def get_member_lifetime_value(
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    service: ReportService = Depends(get_report_service),
):
    """Top members by revenue, then booking count"""
    return [MemberLifetimeValue(**row) for row in service.get_member_lifetime_value(limit)]


@router.get("/forward-occupancy", response_model=List[ForwardOccupancy])
def get_forward_occupancy(
    window_days: Optional[int] = Query(default=None, ge=1, le=366),
    service: ReportService = Depends(get_report_service),
):
    """Booked room-nights and revenue per room type over the coming window"""
    return [ForwardOccupancy(**row) for row in service.get_forward_occupancy(window_days)]
