"""
Postgres functions the repositories call

reserve_inventory / release_inventory take a jsonb array of
{"product_id", "variant_id", "quantity"} lines. Reservation locks each row
and fails the whole call (no partial decrement) when any line is short.
"""

RESERVE_INVENTORY = """
CREATE OR REPLACE FUNCTION reserve_inventory(p_items jsonb)
RETURNS void
LANGUAGE plpgsql
AS $$
DECLARE
    line jsonb;
    qty integer;
    available integer;
BEGIN
    FOR line IN SELECT * FROM jsonb_array_elements(p_items)
    LOOP
        qty := (line->>'quantity')::integer;

        IF line->>'variant_id' IS NOT NULL THEN
            SELECT stock_quantity INTO available
            FROM product_variants
            WHERE id = (line->>'variant_id')::uuid
            FOR UPDATE;

            IF available IS NULL OR available < qty THEN
                RAISE EXCEPTION 'Insufficient stock for variant %', line->>'variant_id';
            END IF;

            UPDATE product_variants
            SET stock_quantity = stock_quantity - qty
            WHERE id = (line->>'variant_id')::uuid;
        ELSE
            SELECT stock_quantity INTO available
            FROM products
            WHERE id = (line->>'product_id')::uuid
            FOR UPDATE;

            IF available IS NULL OR available < qty THEN
                RAISE EXCEPTION 'Insufficient stock for product %', line->>'product_id';
            END IF;

            UPDATE products
            SET stock_quantity = stock_quantity - qty
            WHERE id = (line->>'product_id')::uuid;
        END IF;
    END LOOP;
END;
$$;
"""

RELEASE_INVENTORY = """
CREATE OR REPLACE FUNCTION release_inventory(p_items jsonb)
RETURNS void
LANGUAGE plpgsql
AS $$
DECLARE
    line jsonb;
BEGIN
    FOR line IN SELECT * FROM jsonb_array_elements(p_items)
    LOOP
        IF line->>'variant_id' IS NOT NULL THEN
            UPDATE product_variants
            SET stock_quantity = stock_quantity + (line->>'quantity')::integer
            WHERE id = (line->>'variant_id')::uuid;
        ELSE
            UPDATE products
            SET stock_quantity = stock_quantity + (line->>'quantity')::integer
            WHERE id = (line->>'product_id')::uuid;
        END IF;
    END LOOP;
END;
$$;
"""

DATABASE_FUNCTIONS = [RESERVE_INVENTORY, RELEASE_INVENTORY]
