from rest_framework import serializers


class RosterSyncSerializer(serializers.Serializer):
    """Input for a roster sync request."""

    dry_run = serializers.BooleanField(required=False, default=False)


# Response serializers for API documentation
class RosterSummarySerializer(serializers.Serializer):
    created = serializers.IntegerField()
    updated = serializers.IntegerField()
    deleted = serializers.IntegerField()
    skipped = serializers.IntegerField()
    total = serializers.IntegerField()


class RosterDetailsSerializer(serializers.Serializer):
    created = serializers.ListField(child=serializers.DictField())
    updated = serializers.ListField(child=serializers.DictField())
    deleted = serializers.ListField(child=serializers.DictField())
    skipped = serializers.ListField(child=serializers.DictField())


class ReconciliationReportSerializer(serializers.Serializer):
    outcome = serializers.ChoiceField(choices=['dry_run', 'applied', 'partially_applied'])
    dry_run = serializers.BooleanField()
    executed_at = serializers.DateTimeField()
    organization = serializers.CharField()
    summary = RosterSummarySerializer()
    details = RosterDetailsSerializer()
    applied_operations = serializers.IntegerField()
