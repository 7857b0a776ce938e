from rest_framework import serializers


class StrictSerializer(serializers.Serializer):
    """Rejects keys that are not declared on the serializer."""

    def validate(self, data):
        unknown = set(self.initial_data) - set(self.fields)
        if unknown:
            raise serializers.ValidationError(
                {field: ["Unknown field."] for field in sorted(unknown)}
            )
        return data


class LoginSerializer(StrictSerializer):
    email = serializers.EmailField(max_length=255)
    password = serializers.CharField(trim_whitespace=False)


class SignupSerializer(StrictSerializer):
    name = serializers.CharField(max_length=100)
    username = serializers.CharField(max_length=50)
    email = serializers.EmailField(max_length=255)
    password = serializers.CharField(min_length=8, trim_whitespace=False)
    confirm_password = serializers.CharField(required=False, trim_whitespace=False)

    def validate(self, data):
        data = super().validate(data)
        confirm = data.pop('confirm_password', None)
        if confirm is not None and confirm != data['password']:
            raise serializers.ValidationError({'confirm_password': ["Passwords do not match."]})
        return data


class UserUpdateSerializer(StrictSerializer):
    name = serializers.CharField(max_length=100, required=False)
    username = serializers.CharField(max_length=50, required=False)
    email = serializers.EmailField(max_length=255, required=False)

    def validate(self, data):
        data = super().validate(data)
        if not data:
            raise serializers.ValidationError("Provide at least one of name, username or email.")
        return data
