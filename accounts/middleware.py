from django.http import JsonResponse
from django.urls import NoReverseMatch, reverse


class ForcePasswordChangeMiddleware:
    """
    Middleware to force users to change their password on first login.
    API calls from users with must_change_password=True are refused until
    the password has been changed.
    """

    # URL names that should be accessible even when password change is required
    ALLOWED_URL_NAMES = [
        'accounts:password_change',
        'accounts:logout',
        'accounts:me',
        'accounts:csrf',
        'admin:logout',
    ]

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.user.is_authenticated and getattr(request.user, 'must_change_password', False):
            if not self._is_allowed(request.path):
                return JsonResponse(
                    {'error': 'Password change required', 'must_change_password': True},
                    status=403
                )

        return self.get_response(request)

    def _is_allowed(self, path):
        # Also allow static/media files
        if path.startswith('/static/') or path.startswith('/media/'):
            return True

        for url_name in self.ALLOWED_URL_NAMES:
            try:
                if path == reverse(url_name):
                    return True
            except NoReverseMatch:
                continue
        return False
