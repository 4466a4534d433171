"""
Immersion Facilitée — Runtime configuration

Environment variables with local-dev defaults.  Database settings live in
db.DB_CONFIG alongside the pool they configure.
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Agency defaults
# ---------------------------------------------------------------------------

DEFAULT_ADMIN_EMAIL = os.environ.get(
    "IF_DEFAULT_ADMIN_EMAIL", "admin@immersion-facile.beta.gouv.fr"
)

DEFAULT_QUESTIONNAIRE_URL = os.environ.get(
    "IF_DEFAULT_QUESTIONNAIRE_URL",
    "https://docs.google.com/document/d/1pjsCZbu0CarBCR0GVJ1AmIgwkxGIsD6T/edit",
)

# Referential agencies this close (km, inclusive) to a stored pole-emploi
# agency are considered the same agency.
PE_AGENCY_NEARBY_RADIUS_KM = float(os.environ.get("IF_PE_NEARBY_RADIUS_KM", "0.2"))

# ---------------------------------------------------------------------------
# Pôle emploi referential API
# ---------------------------------------------------------------------------

PE_API_URL = os.environ.get(
    "IF_PE_API_URL",
    "https://api.pole-emploi.io/partenaire/referentielagences/v1/agences",
)
PE_ACCESS_TOKEN_URL = os.environ.get(
    "IF_PE_ACCESS_TOKEN_URL",
    "https://entreprise.pole-emploi.fr/connexion/oauth2/access_token?realm=%2Fpartenaire",
)
PE_CLIENT_ID = os.environ.get("IF_PE_CLIENT_ID", "")
PE_CLIENT_SECRET = os.environ.get("IF_PE_CLIENT_SECRET", "")
PE_SCOPE = os.environ.get("IF_PE_SCOPE", "api_referentielagencesv1 organisationpe")
PE_HTTP_TIMEOUT_SECONDS = 30

# ---------------------------------------------------------------------------
# Operator API / logging
# ---------------------------------------------------------------------------

# bcrypt hash of the admin API key (generate with bcrypt.hashpw)
ADMIN_API_KEY_HASH = os.environ.get("IF_ADMIN_API_KEY_HASH", "")

LOG_LEVEL = os.environ.get("IF_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
