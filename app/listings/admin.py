from django.contrib import admin

from listings.models import AdventurePlace, Attraction, Hotel, Trip


@admin.register(Trip, Hotel, AdventurePlace, Attraction)
class ListingAdmin(admin.ModelAdmin):
    list_display = ["name", "created_by", "is_approved", "created_at"]
    list_filter = ["is_approved"]
    search_fields = ["name", "created_by__email"]
    raw_id_fields = ["created_by"]
