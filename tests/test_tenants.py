"""
Tenant Validation Tests
"""

import pytest

from tenant_rag.tenants import (
    InvalidCollectionError,
    InvalidTenantError,
    ensure_collection_directory,
    get_collection_data_path,
    is_valid_tenant_id,
    validate_collection_name,
    validate_tenant_id,
)


class TestTenantValidation:
    @pytest.mark.parametrize("tenant_id", ["acme", "tenant-1", "Tenant_2", "a" * 100])
    def test_valid(self, tenant_id):
        assert validate_tenant_id(tenant_id) == tenant_id
        assert is_valid_tenant_id(tenant_id)

    def test_whitespace_is_stripped(self):
        assert validate_tenant_id("  acme  ") == "acme"

    @pytest.mark.parametrize("tenant_id", [None, "", "   "])
    def test_missing(self, tenant_id):
        with pytest.raises(InvalidTenantError, match="required"):
            validate_tenant_id(tenant_id)

    @pytest.mark.parametrize("tenant_id", ["bad tenant", "a" * 101, "../etc", "t1;drop", "tenant/1"])
    def test_malformed(self, tenant_id):
        with pytest.raises(InvalidTenantError, match="Invalid tenant_id"):
            validate_tenant_id(tenant_id)
        assert not is_valid_tenant_id(tenant_id)

    def test_invalid_tenant_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_tenant_id("")


class TestCollectionPaths:
    def test_collection_path_under_root(self, tmp_path):
        assert get_collection_data_path("docs", tmp_path) == tmp_path / "docs"

    def test_ensure_creates_directory(self, tmp_path):
        path = ensure_collection_directory("docs", tmp_path)
        assert path.is_dir()

    @pytest.mark.parametrize("name", ["", "..", "a/b", "a\\b", "with space"])
    def test_invalid_collection_names(self, name):
        with pytest.raises(InvalidCollectionError):
            validate_collection_name(name)
