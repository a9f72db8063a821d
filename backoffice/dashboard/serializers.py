from rest_framework import serializers


class StatSerializer(serializers.Serializer):
    key = serializers.CharField()
    label = serializers.CharField()
    value = serializers.CharField()
    description = serializers.CharField()
    tone = serializers.CharField()


class ChartSerializer(serializers.Serializer):
    heading = serializers.CharField()
    label = serializers.CharField()
    filter = serializers.CharField()
    labels = serializers.ListField(child=serializers.CharField())
    data = serializers.ListField(child=serializers.FloatField())
