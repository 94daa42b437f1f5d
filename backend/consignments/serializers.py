from rest_framework import serializers

from .models import ConsignmentLocation, ArtworkConsignment

PHONE_PATTERN = r"^[\d\s\+\-\(\)]+$"


class ConsignmentLocationSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=3, max_length=255)
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    city = serializers.CharField(min_length=2, max_length=100)
    country = serializers.CharField(min_length=2, max_length=100)
    address = serializers.CharField(max_length=500, required=False, allow_blank=True)
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90,
                                        required=False, allow_null=True)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-180, max_value=180,
                                         required=False, allow_null=True)
    contact_email = serializers.EmailField(required=False, allow_blank=True)
    contact_phone = serializers.RegexField(PHONE_PATTERN, max_length=50, required=False, allow_blank=True)

    class Meta:
        model = ConsignmentLocation
        fields = (
            "id", "name", "description", "city", "country", "address", "latitude", "longitude",
            "contact_name", "contact_email", "contact_phone", "status", "created_at", "updated_at",
        )
        read_only_fields = ("id", "created_at", "updated_at")


class AssignmentWorkSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    title = serializers.CharField(source="name")
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    image_url = serializers.CharField(allow_blank=True)


class ArtworkConsignmentSerializer(serializers.ModelSerializer):
    work = AssignmentWorkSerializer(read_only=True)
    location_name = serializers.CharField(source="location.name", read_only=True)

    class Meta:
        model = ArtworkConsignment
        fields = ("id", "work_id", "work", "location_id", "location_name", "status",
                  "assigned_date", "unassigned_date", "notes", "created_at", "updated_at")
        read_only_fields = fields


class AssignArtworkSerializer(serializers.Serializer):
    work_id = serializers.UUIDField()
    status = serializers.ChoiceField(
        choices=[ArtworkConsignment.Status.PENDING, ArtworkConsignment.Status.IN_TRANSIT,
                 ArtworkConsignment.Status.IN_GALLERY],
        default=ArtworkConsignment.Status.IN_GALLERY,
    )
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")


class UpdateAssignmentSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ArtworkConsignment.Status.choices, required=False)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide status or notes.")
        return attrs
