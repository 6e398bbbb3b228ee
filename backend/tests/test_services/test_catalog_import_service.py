"""
Unit tests for the CSV catalog import
"""
import io
import pytest
from decimal import Decimal
from unittest.mock import MagicMock, patch

from storefront.services.catalog_import_service import (
    CatalogImportService,
    derive_sku,
    guess_variant_type,
    load_catalog_frame,
)


CSV = """Category,Product,Variant,Price,Stock
Mugs,Classic Mug,11 oz,349,10
Mugs,Classic Mug,Acrylic,399,5
Frames,Wall Art,A4 Frame,,3
"""


class TestHelpers:

    @pytest.mark.parametrize("variant,expected", [
        ("XL", "Size"),
        ("11 oz", "Size"),
        ("A4 Frame", "Frame"),
        ("With Zipper", "Style"),
        ("Acrylic", "Material"),
        ("Blue", "Option"),
    ])
    def test_guess_variant_type(self, variant, expected):
        assert guess_variant_type(variant) == expected

    def test_derive_sku(self):
        assert derive_sku("Mugs", "Classic Mug (Large)") == "MUG-CLASSIC-MUG-LARGE"

    def test_missing_columns(self):
        with pytest.raises(ValueError) as exc:
            load_catalog_frame(io.StringIO("Category,Product\nMugs,Classic\n"))
        assert "variant" in str(exc.value)

    def test_blank_rows_dropped(self):
        df = load_catalog_frame(io.StringIO("category,product,variant\nMugs,Classic Mug,M\n,,\n"))
        assert len(df) == 1
        assert df.iloc[0]["sku"] == "MUG-CLASSIC-MUG"
        assert df.iloc[0]["stock"] == 0


class TestImport:

    @patch('storefront.services.catalog_import_service.get_db_connection_dict_with_retry')
    def test_upserts_categories_products_and_variants(self, mock_get_conn, mock_db):
        # Arrange
        mock_conn, mock_cursor = mock_db(mock_get_conn)
        repo = MagicMock()
        repo.upsert_category.side_effect = ["cat-mugs", "cat-frames"]
        repo.upsert_product.side_effect = ["prod-mug", "prod-art"]
        service = CatalogImportService(repository=repo)

        # Act
        stats = service.import_csv(io.StringIO(CSV))

        # Assert
        assert stats == {"categories": 2, "products": 2, "variants": 3}

        mug_call = repo.upsert_product.call_args_list[0][0]
        assert mug_call[1:] == (
            "MUG-CLASSIC-MUG", "Classic Mug", "cat-mugs", Decimal('349.0'), None, 15,
        )
        art_call = repo.upsert_product.call_args_list[1][0]
        assert art_call[4] == Decimal('999')

        variant_call = repo.upsert_variant.call_args_list[1][0]
        assert variant_call[1:] == ("prod-mug", "Acrylic", "Material", Decimal('399.0'), 5)

        mock_conn.commit.assert_called_once()
        mock_cursor.close.assert_called_once()
        mock_conn.close.assert_called_once()

    @patch('storefront.services.catalog_import_service.get_db_connection_dict_with_retry')
    def test_dry_run_rolls_back(self, mock_get_conn, mock_db):
        mock_conn, _ = mock_db(mock_get_conn)
        repo = MagicMock()
        repo.upsert_category.return_value = "cat"
        repo.upsert_product.return_value = "prod"

        CatalogImportService(repository=repo).import_csv(io.StringIO(CSV), dry_run=True)

        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()

    @patch('storefront.services.catalog_import_service.get_db_connection_dict_with_retry')
    def test_error_rolls_back_and_closes(self, mock_get_conn, mock_db):
        mock_conn, mock_cursor = mock_db(mock_get_conn)
        repo = MagicMock()
        repo.upsert_category.side_effect = Exception("db down")

        with pytest.raises(Exception):
            CatalogImportService(repository=repo).import_csv(io.StringIO(CSV))

        mock_conn.rollback.assert_called_once()
        mock_conn.close.assert_called_once()
