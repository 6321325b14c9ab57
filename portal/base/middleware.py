import logging

from django.contrib.auth.models import User
from django.contrib.auth.signals import user_logged_in, user_login_failed
from django.dispatch import receiver
from django.utils import timezone
from django.utils.deprecation import MiddlewareMixin

from staff.models import Staff
from .models import LoginAudit

logger = logging.getLogger(__name__)


def get_client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR") or None


def touch_last_access(user):
    Staff.objects.filter(user=user).update(last_accessed_at=timezone.now())


class LastAccessMiddleware(MiddlewareMixin):
    """
    Stamps the staff profile of every authenticated request so accounts that
    never use the portal can be told apart.
    """

    def process_request(self, request):
        if request.user.is_authenticated:
            touch_last_access(request.user)


def record_login(user, request, success):
    LoginAudit.objects.create(
        user=user,
        username=user.username,
        ip_address=get_client_ip(request) if request else None,
        user_agent=request.META.get("HTTP_USER_AGENT", "") if request else "",
        success=success,
    )


@receiver(user_logged_in)
def on_user_logged_in(sender, user, request, **kwargs):
    record_login(user, request, success=True)
    touch_last_access(user)


@receiver(user_login_failed)
def on_user_login_failed(sender, credentials, request=None, **kwargs):
    username = credentials.get("username")
    user = User.objects.filter(username=username).first() if username else None
    if user is None:
        return
    logger.warning("Failed login for %s", username)
    record_login(user, request, success=False)
