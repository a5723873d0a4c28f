# Users and customers (read-only collaborators)
from app.models.users.user_models import User
from app.models.customers.customer_models import Customer

# Quotes
from app.models.quotes.quote_models import Quote, QuoteLineItem
from app.models.quotes.artwork_version_models import ArtworkVersion
from app.models.quotes.quote_audit_models import QuoteAuditLog

# Support
from app.models.support.activity_models import EntityActivity
