import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import scholarships.donations.models
import scholarships.students.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="School",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, unique=True, verbose_name="Name")),
                ("domain", models.CharField(blank=True, max_length=255, verbose_name="Email Domain")),
                ("verification_methods", models.JSONField(default=scholarships.students.models.default_verification_methods, verbose_name="Verification Methods")),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "School",
                "verbose_name_plural": "Schools",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Student",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_uid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True, verbose_name="Public User ID")),
                ("email", models.EmailField(max_length=254, unique=True, verbose_name="Email")),
                ("first_name", models.CharField(max_length=100, verbose_name="First Name")),
                ("last_name", models.CharField(max_length=100, verbose_name="Last Name")),
                ("school_name", models.CharField(blank=True, max_length=200, verbose_name="School")),
                ("major", models.CharField(blank=True, max_length=200, verbose_name="Major")),
                ("graduation_year", models.CharField(blank=True, max_length=4, verbose_name="Graduation Year")),
                ("registration_status", models.CharField(choices=[("pending_payment", "Pending Payment"), ("complete", "Complete"), ("verified", "Verified")], db_index=True, default="pending_payment", max_length=20)),
                ("payment_complete", models.BooleanField(default=False)),
                ("payment_status", models.CharField(default="pending", max_length=20)),
                ("payment_intent_id", models.CharField(blank=True, max_length=255)),
                ("payment_completed_at", models.DateTimeField(blank=True, null=True)),
                ("registration_fee", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("registration_paid", models.BooleanField(default=False)),
                ("verified", models.BooleanField(default=False)),
                ("status", models.CharField(choices=[("active", "Active"), ("suspended", "Suspended"), ("inactive", "Inactive")], db_index=True, default="active", max_length=20)),
                ("funding_goal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("bio", models.TextField(blank=True)),
                ("profile_photo", models.CharField(blank=True, max_length=500)),
                ("profile_url", models.CharField(max_length=255, unique=True)),
                ("is_public", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="student_profile", to=settings.AUTH_USER_MODEL, verbose_name="User")),
            ],
            options={
                "verbose_name": "Student",
                "verbose_name_plural": "Students",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Donor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("first_name", models.CharField(max_length=100)),
                ("last_name", models.CharField(max_length=100)),
                ("phone", models.CharField(blank=True, max_length=30)),
                ("address", models.JSONField(blank=True, default=dict)),
                ("preferences", models.JSONField(default=scholarships.donations.models.default_donor_preferences)),
                ("verified", models.BooleanField(default=False)),
                ("member_since", models.DateTimeField(default=django.utils.timezone.now)),
                ("last_login", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="donor_profile", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Donor",
                "verbose_name_plural": "Donors",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Donation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("donor_email", models.EmailField(blank=True, max_length=254)),
                ("donor_first_name", models.CharField(blank=True, max_length=100)),
                ("donor_last_name", models.CharField(blank=True, max_length=100)),
                ("donor_phone", models.CharField(blank=True, max_length=30)),
                ("donor_address", models.JSONField(blank=True, null=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("donation_type", models.CharField(choices=[("general", "General"), ("registry_item", "Registry Item"), ("emergency", "Emergency"), ("registration_fee", "Registration Fee")], default="general", max_length=20)),
                ("payment_method", models.CharField(choices=[("stripe", "Stripe"), ("paypal", "PayPal"), ("zelle", "Zelle")], default="stripe", max_length=20)),
                ("payment_intent_id", models.CharField(blank=True, db_index=True, max_length=255)),
                ("transaction_fee", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("net_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("processing", "Processing"), ("completed", "Completed"), ("failed", "Failed"), ("refunded", "Refunded")], db_index=True, default="pending", max_length=20)),
                ("is_anonymous", models.BooleanField(default=False)),
                ("donor_message", models.TextField(blank=True)),
                ("tax_receipt_number", models.CharField(blank=True, max_length=40, null=True, unique=True)),
                ("failure_reason", models.TextField(blank=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("donor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="donations", to="scholarships.donor")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="donations", to="scholarships.student")),
            ],
            options={
                "verbose_name": "Donation",
                "verbose_name_plural": "Donations",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="RegistrationFee",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("receipt_number", models.CharField(max_length=40, unique=True)),
                ("student_first_name", models.CharField(max_length=100)),
                ("student_last_name", models.CharField(max_length=100)),
                ("student_email", models.EmailField(max_length=254)),
                ("student_school", models.CharField(blank=True, max_length=200)),
                ("student_major", models.CharField(blank=True, max_length=200)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("payment_method", models.CharField(default="stripe", max_length=20)),
                ("payment_intent_id", models.CharField(db_index=True, max_length=255)),
                ("transaction_fee", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("net_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("completed", "Completed"), ("failed", "Failed")], default="completed", max_length=20)),
                ("idempotency_key", models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="registration_fees", to="scholarships.student")),
            ],
            options={
                "verbose_name": "Registration Fee",
                "verbose_name_plural": "Registration Fees",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PaymentTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("provider", models.CharField(default="stripe", max_length=20)),
                ("provider_transaction_id", models.CharField(db_index=True, max_length=255)),
                ("provider_fee", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("gross_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("net_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("merchant_account_id", models.CharField(default="gradvillage_main", max_length=100)),
                ("risk_score", models.FloatField(default=0.1)),
                ("fraud_status", models.CharField(default="clean", max_length=20)),
                ("compliance_checked", models.BooleanField(default=True)),
                ("gateway_response", models.JSONField(blank=True, default=dict)),
                ("settled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("donation", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="transactions", to="scholarships.donation")),
                ("registration_fee", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="transactions", to="scholarships.registrationfee")),
            ],
            options={
                "verbose_name": "Payment Transaction",
                "verbose_name_plural": "Payment Transactions",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="DonorBookmark",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("donor", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="bookmarks", to="scholarships.donor")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="bookmarked_by", to="scholarships.student")),
            ],
            options={
                "verbose_name": "Donor Bookmark",
                "verbose_name_plural": "Donor Bookmarks",
                "ordering": ["-created_at"],
                "constraints": [models.UniqueConstraint(fields=("donor", "student"), name="unique_donor_bookmark")],
            },
        ),
        migrations.CreateModel(
            name="SchoolVerification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("verification_method", models.CharField(choices=[("email", "Email"), ("document", "Document")], max_length=20)),
                ("verification_email", models.EmailField(blank=True, max_length=254)),
                ("verification_document", models.CharField(blank=True, max_length=500)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("verified", "Verified"), ("rejected", "Rejected")], db_index=True, default="pending", max_length=20)),
                ("rejection_reason", models.TextField(blank=True)),
                ("notes", models.TextField(blank=True)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("reviewed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reviewed_verifications", to=settings.AUTH_USER_MODEL)),
                ("school", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="verifications", to="scholarships.school")),
                ("student", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="school_verification", to="scholarships.student")),
            ],
            options={
                "verbose_name": "School Verification",
                "verbose_name_plural": "School Verifications",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="WelcomeBox",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("processing", "Processing"), ("shipped", "Shipped"), ("delivered", "Delivered")], default="pending", max_length=20)),
                ("shipping_address", models.JSONField(default=dict)),
                ("tracking_number", models.CharField(blank=True, max_length=100)),
                ("shipped_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("student", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="welcome_box", to="scholarships.student")),
            ],
            options={
                "verbose_name": "Welcome Box",
                "verbose_name_plural": "Welcome Boxes",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="TaxReceipt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("receipt_number", models.CharField(max_length=40, unique=True)),
                ("receipt_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("tax_year", models.PositiveIntegerField()),
                ("nonprofit_name", models.CharField(max_length=200)),
                ("nonprofit_ein", models.CharField(max_length=20)),
                ("nonprofit_address", models.JSONField(default=dict)),
                ("donor_name", models.CharField(max_length=255)),
                ("donor_email", models.EmailField(blank=True, max_length=254)),
                ("donor_address", models.JSONField(blank=True, default=dict)),
                ("donation_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("donation_date", models.DateTimeField()),
                ("donation_description", models.TextField()),
                ("receipt_pdf_url", models.CharField(blank=True, max_length=500)),
                ("issued", models.BooleanField(default=False)),
                ("issued_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("donation", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="tax_receipt", to="scholarships.donation")),
                ("registration_fee", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="tax_receipt", to="scholarships.registrationfee")),
            ],
            options={
                "verbose_name": "Tax Receipt",
                "verbose_name_plural": "Tax Receipts",
                "ordering": ["-receipt_date"],
            },
        ),
        migrations.CreateModel(
            name="OutboxMessage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("topic", models.CharField(db_index=True, max_length=100)),
                ("payload", models.JSONField(default=dict)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("sent", "Sent"), ("failed", "Failed")], db_index=True, default="pending", max_length=20)),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("max_attempts", models.PositiveIntegerField(default=5)),
                ("last_error", models.TextField(blank=True)),
                ("next_attempt_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Outbox Message",
                "verbose_name_plural": "Outbox Messages",
                "ordering": ["created_at", "id"],
            },
        ),
    ]
