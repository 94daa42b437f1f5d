# backend/consignments/services.py
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from commerce.models import Product
from common.exceptions import Conflict
from common.money import money_str
from platformapp.models import Tenant

from .models import ArtworkConsignment, ConsignmentLocation

logger = logging.getLogger(__name__)


def _days_between(start: datetime, end: datetime) -> int:
    return max(0, (end - start).days)


def _month_start(dt: datetime) -> datetime:
    return dt.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def get_location(tenant: Tenant, location_id) -> ConsignmentLocation:
    loc = ConsignmentLocation.objects.filter(tenant=tenant, pk=location_id).first()
    if loc is None:
        raise NotFound("Location not found")
    return loc


def get_work(tenant: Tenant, work_id) -> Product:
    work = Product.objects.filter(tenant=tenant, pk=work_id).first()
    if work is None:
        raise NotFound("Artwork not found")
    return work


def active_assignment(location: ConsignmentLocation, work_id) -> ArtworkConsignment:
    assignment = (ArtworkConsignment.objects
                  .filter(ArtworkConsignment.active_q(), location=location, work_id=work_id)
                  .select_related("work", "location").first())
    if assignment is None:
        raise NotFound("No active assignment for this artwork at this location")
    return assignment


def assign_work(tenant: Tenant, location: ConsignmentLocation, *, work_id, status: str,
                notes: str = "") -> ArtworkConsignment:
    """The partial unique constraint rejects a second active row for the pair."""
    work = get_work(tenant, work_id)
    try:
        with transaction.atomic():
            assignment = ArtworkConsignment.objects.create(
                tenant=tenant, work=work, location=location, status=status, notes=notes or "",
            )
    except IntegrityError:
        raise Conflict("Artwork is already assigned to this location")
    logger.info("work %s assigned to location %s (%s)", work.pk, location.pk, status)
    return assignment


def update_assignment(assignment: ArtworkConsignment, *, status: Optional[str] = None,
                      notes: Optional[str] = None) -> ArtworkConsignment:
    """Sold/returned close the assignment."""
    if status is not None:
        assignment.status = status
        if status in ArtworkConsignment.CLOSED_STATUSES:
            assignment.unassigned_date = timezone.now()
    if notes is not None:
        assignment.notes = notes
    assignment.save()
    return assignment


def unassign(assignment: ArtworkConsignment) -> ArtworkConsignment:
    return update_assignment(assignment, status=ArtworkConsignment.Status.RETURNED)


def work_history(tenant: Tenant, work_id, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or timezone.now()
    work = get_work(tenant, work_id)
    rows = (ArtworkConsignment.objects.filter(tenant=tenant, work=work)
            .select_related("location").order_by("-assigned_date"))
    assignments = []
    for a in rows:
        assignments.append({
            "id": str(a.pk),
            "location_id": str(a.location_id),
            "location_name": a.location.name,
            "city": a.location.city,
            "status": a.status,
            "assigned_date": a.assigned_date,
            "unassigned_date": a.unassigned_date,
            "days_at_location": _days_between(a.assigned_date, a.unassigned_date or now),
            "notes": a.notes or None,
        })
    return {
        "work": {"id": str(work.pk), "title": work.name, "price": str(work.price),
                 "image_url": work.image_url or None},
        "assignments": assignments,
    }


def _sold_between(tenant: Tenant, start: datetime, end: Optional[datetime] = None):
    qs = ArtworkConsignment.objects.filter(tenant=tenant, status=ArtworkConsignment.Status.SOLD,
                                           unassigned_date__gte=start)
    if end is not None:
        qs = qs.filter(unassigned_date__lt=end)
    return qs


def overview(tenant: Tenant, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or timezone.now()
    this_month = _month_start(now)
    last_month = _month_start(this_month - timedelta(days=1))

    in_gallery = ArtworkConsignment.objects.filter(
        tenant=tenant, status=ArtworkConsignment.Status.IN_GALLERY, unassigned_date__isnull=True,
    )
    sold_this_month = _sold_between(tenant, this_month)
    revenue_this_month = sold_this_month.aggregate(s=Sum("work__price"))["s"]
    revenue_last_month = (_sold_between(tenant, last_month, this_month)
                          .aggregate(s=Sum("work__price"))["s"])

    top = (sold_this_month.values("location_id", "location__name")
           .annotate(revenue=Sum("work__price")).order_by("-revenue").first())
    top_location = None
    if top:
        top_location = {"location_id": str(top["location_id"]), "location_name": top["location__name"],
                        "revenue": money_str(top["revenue"])}

    oldest = in_gallery.select_related("work", "location").order_by("assigned_date").first()
    longest = None
    if oldest:
        longest = {"work_id": str(oldest.work_id), "work_title": oldest.work.name,
                   "days": _days_between(oldest.assigned_date, now),
                   "location_name": oldest.location.name}

    return {
        "total_works": ArtworkConsignment.objects.filter(tenant=tenant).count(),
        "active_locations": ConsignmentLocation.objects.filter(
            tenant=tenant, status=ConsignmentLocation.Status.ACTIVE).count(),
        "works_in_gallery": in_gallery.count(),
        "works_sold_this_month": sold_this_month.count(),
        "revenue_this_month": money_str(revenue_this_month),
        "revenue_last_month": money_str(revenue_last_month),
        "top_location_by_sales": top_location,
        "longest_in_gallery": longest,
    }


def stale_alerts(tenant: Tenant, min_days: int = 60, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """In-gallery works sitting at a location for at least `min_days`, oldest first."""
    if min_days < 1:
        raise ValidationError({"min_days": ["min_days must be >= 1"]})
    now = now or timezone.now()
    cutoff = now - timedelta(days=min_days)
    rows = (ArtworkConsignment.objects
            .filter(tenant=tenant, status=ArtworkConsignment.Status.IN_GALLERY,
                    unassigned_date__isnull=True, assigned_date__lte=cutoff)
            .select_related("work", "location").order_by("assigned_date"))
    return [
        {
            "assignment_id": str(a.pk),
            "work_id": str(a.work_id),
            "work_title": a.work.name,
            "work_price": str(a.work.price),
            "work_image_url": a.work.image_url or None,
            "location_id": str(a.location_id),
            "location_name": a.location.name,
            "city": a.location.city,
            "assigned_date": a.assigned_date,
            "days_in_gallery": _days_between(a.assigned_date, now),
            "status": a.status,
        }
        for a in rows
    ]
