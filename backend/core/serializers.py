from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, SystemConfig, SystemLog
from .config import coerce_value
from .validators import validate_phone


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'is_active', 'is_staff',
                  'platform_admin', 'custom_margin_enabled', 'created_at', 'updated_at']
        read_only_fields = ['is_staff', 'platform_admin', 'custom_margin_enabled', 'created_at', 'updated_at']

    def validate_phone(self, value):
        if value and not validate_phone(value):
            raise serializers.ValidationError('Please enter a valid Indian phone number')
        return value


class UserAdminSerializer(UserSerializer):
    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['margin_override_history', 'last_login']
        read_only_fields = ['margin_override_history', 'last_login', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)
    email = serializers.EmailField(required=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone']

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('A user with this email already exists.')
        return value.lower()

    def validate_phone(self, value):
        if value and not validate_phone(value):
            raise serializers.ValidationError('Please enter a valid Indian phone number')
        return value

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = User.objects.create(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class MarginPermissionSerializer(serializers.Serializer):
    custom_margin_enabled = serializers.BooleanField()
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


class SystemConfigSerializer(serializers.ModelSerializer):
    last_modified_by = serializers.StringRelatedField(read_only=True)
    typed_value = serializers.SerializerMethodField()

    class Meta:
        model = SystemConfig
        fields = ['id', 'config_key', 'config_value', 'typed_value', 'description', 'data_type',
                  'category', 'is_active', 'last_modified_by', 'updated_at']
        read_only_fields = ['last_modified_by', 'updated_at']

    def get_typed_value(self, obj):
        value = coerce_value(obj.config_value, obj.data_type)
        return str(value) if value is not None and obj.data_type == 'number' else value

    def validate(self, attrs):
        data_type = attrs.get('data_type', getattr(self.instance, 'data_type', 'string'))
        raw = attrs.get('config_value', getattr(self.instance, 'config_value', None))
        if data_type in ('number', 'json') and coerce_value(raw, data_type) is None:
            raise serializers.ValidationError({'config_value': f'Value is not a valid {data_type}.'})
        return attrs


class SystemLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = SystemLog
        fields = ['id', 'user', 'action_type', 'module', 'target_id', 'target_name',
                  'details', 'severity', 'ip_address', 'created_at']
