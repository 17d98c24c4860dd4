# Configuration for TicTrack IT Support Ticketing
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# JWT Authentication Configuration
JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'tictrack-secret-key-change-in-production')
JWT_ALGORITHM = 'HS256'
JWT_EXPIRY_HOURS = int(os.getenv('JWT_EXPIRY_HOURS', 24))

# Frontend Configuration (for CORS)
FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:3000')

# Roles only count when they are tagged with this business entity
BUSINESS_ENTITY = os.getenv('BUSINESS_ENTITY', 'TicTrack')

# Ticket lifecycle
OVERDUE_THRESHOLD_MINUTES = int(os.getenv('OVERDUE_THRESHOLD_MINUTES', 15))
DASHBOARD_POLL_SECONDS = int(os.getenv('DASHBOARD_POLL_SECONDS', 5))
DISPLAY_TIMEZONE = os.getenv('DISPLAY_TIMEZONE', 'UTC')

# SendGrid notifications (optional - alerts are best-effort)
SENDGRID_API_KEY = os.getenv('SENDGRID_API_KEY')
NOTIFICATION_EMAIL_FROM = os.getenv('NOTIFICATION_EMAIL_FROM', 'tictrack@school.edu')
IT_NOTIFICATION_EMAIL = os.getenv('IT_NOTIFICATION_EMAIL', 'it-support@school.edu')
ENABLE_NOTIFICATIONS = os.getenv('ENABLE_NOTIFICATIONS', 'true').lower() == 'true'

# Report uploads
MAX_REPORT_SIZE_KB = int(os.getenv('MAX_REPORT_SIZE_KB', 512))

# Logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
