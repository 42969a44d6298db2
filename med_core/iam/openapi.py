from drf_spectacular.extensions import OpenApiAuthenticationExtension

from med_core.iam.auth import access_cookie_name


class MedTrackJWTScheme(OpenApiAuthenticationExtension):
    """
    Registers CookieOrHeaderJWTAuthentication with spectacular (loaded from
    IamConfig.ready). The name is referenced by SPECTACULAR_SETTINGS["SECURITY"].
    """
    target_class = "med_core.iam.auth.CookieOrHeaderJWTAuthentication"
    name = "BearerOrCookieJWT"

    def get_security_definition(self, auto_schema):
        return {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": (
                f"Access token from POST /api/v1/auth/login/. Browsers get it as the "
                f"HttpOnly `{access_cookie_name()}` cookie; other clients send "
                f"`Authorization: Bearer <access>`."
            ),
        }
