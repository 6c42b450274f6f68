"""
Initial FanPulse schema.

Fandom, FandomPlatform, ContentItem, MetricSnapshot, Influencer,
GoogleTrend, FandomDiscovery, ScrapeRun.
"""

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


PLATFORM_CHOICES = [
    ("instagram", "Instagram"),
    ("tiktok", "TikTok"),
    ("facebook", "Facebook"),
    ("youtube", "YouTube"),
    ("twitter", "X (Twitter)"),
    ("reddit", "Reddit"),
]

TIER_CHOICES = [
    ("emerging", "Emerging"),
    ("trending", "Trending"),
    ("existing", "Existing"),
]


def _uuid_pk():
    return models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        primary_key=True,
        serialize=False,
    )


def _fandom_fk(related_name):
    return models.ForeignKey(
        on_delete=django.db.models.deletion.CASCADE,
        related_name=related_name,
        to="core.fandom",
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Fandom",
            fields=[
                ("id", _uuid_pk()),
                ("name", models.CharField(max_length=255)),
                ("slug", models.SlugField(max_length=255, unique=True)),
                ("tier", models.CharField(choices=TIER_CHOICES, max_length=20)),
                ("description", models.TextField(blank=True)),
                ("fandom_group", models.CharField(blank=True, max_length=255)),
                ("demographic_tags", models.JSONField(blank=True, default=list)),
                ("is_retired", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "fanpulse_fandom",
                "ordering": ["created_at"],
                "indexes": [models.Index(fields=["tier"], name="idx_fandom_tier")],
            },
        ),
        migrations.CreateModel(
            name="FandomPlatform",
            fields=[
                ("id", _uuid_pk()),
                ("platform", models.CharField(choices=PLATFORM_CHOICES, max_length=20)),
                ("handle", models.CharField(max_length=255)),
                ("followers", models.BigIntegerField(default=0)),
                ("url", models.URLField(blank=True, max_length=500)),
                ("last_scraped_at", models.DateTimeField(blank=True, null=True)),
                ("fandom", _fandom_fk("platforms")),
            ],
            options={
                "db_table": "fanpulse_fandom_platform",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("fandom", "platform"), name="uniq_fandom_platform"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="ContentItem",
            fields=[
                ("id", _uuid_pk()),
                ("platform", models.CharField(choices=PLATFORM_CHOICES, max_length=20)),
                ("external_id", models.CharField(max_length=255)),
                (
                    "content_type",
                    models.CharField(
                        choices=[
                            ("post", "Post"),
                            ("video", "Video"),
                            ("reel", "Reel"),
                            ("tweet", "Tweet"),
                            ("thread", "Thread"),
                        ],
                        max_length=20,
                    ),
                ),
                ("text", models.TextField(blank=True)),
                ("url", models.URLField(blank=True, max_length=1000)),
                ("author_username", models.CharField(blank=True, max_length=255)),
                ("author_followers", models.BigIntegerField(blank=True, null=True)),
                ("likes", models.BigIntegerField(default=0)),
                ("comments", models.BigIntegerField(default=0)),
                ("shares", models.BigIntegerField(default=0)),
                ("views", models.BigIntegerField(default=0)),
                ("hashtags", models.JSONField(blank=True, default=list)),
                ("published_at", models.DateTimeField(blank=True, null=True)),
                ("scraped_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("fandom", _fandom_fk("content_items")),
            ],
            options={
                "db_table": "fanpulse_content_item",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("platform", "external_id"),
                        name="uniq_content_platform_ext_id",
                    )
                ],
                "indexes": [
                    models.Index(
                        fields=["fandom", "platform"], name="idx_content_fandom_platform"
                    ),
                    models.Index(fields=["scraped_at"], name="idx_content_scraped_at"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MetricSnapshot",
            fields=[
                ("id", _uuid_pk()),
                ("platform", models.CharField(choices=PLATFORM_CHOICES, max_length=20)),
                ("date", models.DateField()),
                ("followers", models.BigIntegerField(default=0)),
                ("posts_count", models.PositiveIntegerField(default=0)),
                ("engagement_total", models.BigIntegerField(default=0)),
                ("avg_likes", models.FloatField(default=0.0)),
                ("avg_comments", models.FloatField(default=0.0)),
                ("avg_shares", models.FloatField(default=0.0)),
                ("engagement_rate", models.FloatField(default=0.0)),
                ("growth_rate", models.FloatField(default=0.0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("fandom", _fandom_fk("snapshots")),
            ],
            options={
                "db_table": "fanpulse_metric_snapshot",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("fandom", "platform", "date"),
                        name="uniq_snapshot_fandom_plat_date",
                    )
                ],
                "indexes": [
                    models.Index(
                        fields=["platform", "date"], name="idx_snapshot_platform_date"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Influencer",
            fields=[
                ("id", _uuid_pk()),
                ("platform", models.CharField(choices=PLATFORM_CHOICES, max_length=20)),
                ("username", models.CharField(max_length=255)),
                ("display_name", models.CharField(blank=True, max_length=255)),
                ("followers", models.BigIntegerField(default=0)),
                ("engagement_rate", models.FloatField(default=0.0)),
                ("profile_url", models.URLField(blank=True, max_length=500)),
                ("avatar_url", models.URLField(blank=True, max_length=1000)),
                ("bio", models.TextField(blank=True)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("post_count", models.PositiveIntegerField(default=0)),
                ("relevance_score", models.FloatField(default=0.0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("fandom", _fandom_fk("influencers")),
            ],
            options={
                "db_table": "fanpulse_influencer",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("fandom", "platform", "username"),
                        name="uniq_influencer_identity",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="GoogleTrend",
            fields=[
                ("id", _uuid_pk()),
                ("keyword", models.CharField(max_length=255)),
                ("date", models.DateField()),
                ("region", models.CharField(default="PH", max_length=20)),
                ("interest_value", models.PositiveSmallIntegerField(default=0)),
                ("fandom", _fandom_fk("trends")),
            ],
            options={
                "db_table": "fanpulse_google_trend",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("fandom", "keyword", "date", "region"),
                        name="uniq_trend_identity",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="FandomDiscovery",
            fields=[
                ("id", _uuid_pk()),
                ("name", models.CharField(max_length=255)),
                ("normalized_name", models.CharField(max_length=255, unique=True)),
                (
                    "source",
                    models.CharField(
                        choices=[("hashtag", "Hashtag"), ("mention", "Mention")],
                        default="hashtag",
                        max_length=20,
                    ),
                ),
                ("platforms", models.JSONField(blank=True, default=list)),
                ("occurrences", models.PositiveIntegerField(default=0)),
                ("distinct_authors", models.PositiveIntegerField(default=0)),
                ("estimated_reach", models.BigIntegerField(default=0)),
                ("size_score", models.PositiveSmallIntegerField(default=0)),
                ("sustainability_score", models.PositiveSmallIntegerField(default=0)),
                ("growth_score", models.PositiveSmallIntegerField(default=0)),
                ("overall_score", models.PositiveSmallIntegerField(default=0)),
                ("confidence", models.PositiveSmallIntegerField(default=0)),
                (
                    "suggested_tier",
                    models.CharField(choices=TIER_CHOICES, default="emerging", max_length=20),
                ),
                ("suggested_group", models.CharField(blank=True, max_length=100)),
                ("sample_content", models.JSONField(blank=True, default=list)),
                ("evidence", models.JSONField(blank=True, default=dict)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("discovered", "Discovered"),
                            ("dismissed", "Dismissed"),
                            ("tracked", "Tracked"),
                            ("cleared", "Cleared"),
                        ],
                        default="discovered",
                        max_length=20,
                    ),
                ),
                (
                    "first_detected_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                (
                    "last_detected_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("dismissed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "tracked_fandom",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="discoveries",
                        to="core.fandom",
                    ),
                ),
            ],
            options={
                "db_table": "fanpulse_fandom_discovery",
                "indexes": [
                    models.Index(
                        fields=["status", "overall_score"],
                        name="idx_discovery_status_score",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ScrapeRun",
            fields=[
                ("id", _uuid_pk()),
                ("actor_id", models.CharField(blank=True, max_length=255)),
                ("dataset_id", models.CharField(blank=True, max_length=255)),
                (
                    "platform",
                    models.CharField(blank=True, choices=PLATFORM_CHOICES, max_length=20),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("running", "Running"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("items_count", models.PositiveIntegerField(default=0)),
                ("error_message", models.TextField(blank=True)),
                (
                    "fandom",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="scrape_runs",
                        to="core.fandom",
                    ),
                ),
            ],
            options={
                "db_table": "fanpulse_scrape_run",
                "indexes": [
                    models.Index(fields=["dataset_id"], name="idx_scrape_run_dataset"),
                    models.Index(
                        fields=["status", "started_at"], name="idx_scrape_run_status"
                    ),
                ],
            },
        ),
    ]
