from rest_framework import serializers


class LoginSerializer(serializers.Serializer):
    # the dashboard posts ``userName``; ``username`` is accepted as well
    userName = serializers.CharField(required=False, allow_blank=True)
    username = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate(self, attrs):
        name = (attrs.get('userName') or attrs.get('username') or '').strip()
        if not name or not attrs.get('password'):
            raise serializers.ValidationError('Username and password are required.')
        attrs['login'] = name
        return attrs
