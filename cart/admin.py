"""Django admin configuration for persisted carts."""

from django.contrib import admin

from .models import StoredCart


@admin.register(StoredCart)
class StoredCartAdmin(admin.ModelAdmin):
    """Read-only view of persisted carts for support."""

    list_display = ('storage_key', 'get_company', 'get_items_count', 'updated_at')
    search_fields = ('storage_key',)
    readonly_fields = ('storage_key', 'payload', 'updated_at')

    def get_company(self, obj):
        return (obj.payload or {}).get('companyId') or '-'
    get_company.short_description = 'Company'

    def get_items_count(self, obj):
        return len((obj.payload or {}).get('items') or [])
    get_items_count.short_description = 'Items'
