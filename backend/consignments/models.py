from django.db import models
from django.db.models import Q
from django.utils import timezone
from common.models import BaseModel


class ConsignmentLocation(BaseModel):
    """Partner gallery, café or studio holding a tenant's works."""
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"
        ARCHIVED = "archived", "Archived"

    tenant = models.ForeignKey("platformapp.Tenant", on_delete=models.CASCADE, related_name="consignment_locations")
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    city = models.CharField(max_length=100)
    country = models.CharField(max_length=100)
    address = models.CharField(max_length=500, blank=True, default="")
    latitude = models.DecimalField(max_digits=9, decimal_places=6, blank=True, null=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, blank=True, null=True)
    contact_name = models.CharField(max_length=255, blank=True, default="")
    contact_email = models.EmailField(blank=True, default="")
    contact_phone = models.CharField(max_length=50, blank=True, default="")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)

    class Meta:
        indexes = [
            models.Index(fields=["tenant", "status"]),
            models.Index(fields=["tenant", "city"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.city})"


class ArtworkConsignment(BaseModel):
    """
    One stay of a work (catalog product) at a location. Rows are closed with
    `unassigned_date`, never deleted, so they double as the movement history.
    """
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        IN_TRANSIT = "in_transit", "In transit"
        IN_GALLERY = "in_gallery", "In gallery"
        SOLD = "sold", "Sold"
        RETURNED = "returned", "Returned"

    CLOSED_STATUSES = (Status.SOLD, Status.RETURNED)

    tenant = models.ForeignKey("platformapp.Tenant", on_delete=models.CASCADE, related_name="consignments")
    work = models.ForeignKey("commerce.Product", on_delete=models.PROTECT, related_name="consignments")
    location = models.ForeignKey(ConsignmentLocation, on_delete=models.PROTECT, related_name="assignments")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_GALLERY)
    assigned_date = models.DateTimeField(default=timezone.now)
    unassigned_date = models.DateTimeField(blank=True, null=True)
    notes = models.TextField(blank=True, default="")

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["work", "location"],
                condition=Q(unassigned_date__isnull=True) & ~Q(status__in=["sold", "returned"]),
                name="uniq_active_consignment_per_work_location",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "status"]),
            models.Index(fields=["work", "location"]),
        ]

    @classmethod
    def active_q(cls) -> Q:
        return Q(unassigned_date__isnull=True) & ~Q(status__in=cls.CLOSED_STATUSES)

    @property
    def is_active(self) -> bool:
        return self.unassigned_date is None and self.status not in self.CLOSED_STATUSES
