from rest_framework import serializers
from .models import User


class UserSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'name',
            'display_name',
            'role',
            'avatar_url',
            'bio',
            'is_onboarded',
            'date_joined',
        ]
        read_only_fields = ['username', 'email', 'role', 'is_onboarded', 'date_joined']


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Compact profile embedded in projects, messages and comments.
    """
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'name', 'display_name', 'role', 'avatar_url']


class OnboardingSerializer(serializers.ModelSerializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
    name = serializers.CharField(max_length=255)

    class Meta:
        model = User
        fields = ['name', 'role', 'bio', 'avatar_url']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value

    def update(self, instance, validated_data):
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.is_onboarded = True
        instance.save()
        return instance
