"""
GradVillage Scholarships Models Registry

Central models registry for the scholarships application. It imports and
exposes the models of the logical submodules so they register with Django's
ORM under the single `scholarships` app label.

Architecture:
- students/: Schools, students, school verification, welcome boxes
- donations/: Donors, donations, registration fees, payment transactions
- receipts/: Tax receipts
- notifications/: Outbox for asynchronous side effects

Author: GradVillage Development Team
Version: 1.0.0
"""

# Student-related models
from .students.models import *

# Donation and payment models
from .donations.models import *

# Tax receipt models
from .receipts.models import *

# Outbox model
from .notifications.models import *
