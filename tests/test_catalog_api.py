"""Catalog routes driven through the Lambda entry point with API Gateway events."""

import base64

import pytest

from botocore.exceptions import ClientError

from catalog_lambda import app as catalog_app

from tests.conftest import ADMIN_CLAIMS, VISITOR_CLAIMS, response_json

DOG = {
    "name": "Rex",
    "breed": "Mestizo Border Collie",
    "age": "2 años",
    "size": "Mediano",
    "gender": "Macho",
    "story": "Rescatado de una situación de abandono en el campo.",
    "personality": ["Inteligente", "Activo", "Leal"],
    "status": "available",
}


def image(filename: str = "rex.jpg") -> dict:
    return {"filename": filename, "content_base64": base64.b64encode(b"\xff\xd8\xff-rex").decode()}


@pytest.fixture(autouse=True)
def wired_service(monkeypatch, catalog_service):
    monkeypatch.setattr(catalog_app, "catalog_service", catalog_service)
    monkeypatch.setattr(catalog_app, "health_service", None)
    return catalog_service


@pytest.fixture
def call(api_event, lambda_context):
    def _call(method, path, body=None, claims=None):
        return catalog_app.lambda_handler(api_event(method, path, body=body, claims=claims), lambda_context)
    return _call


def create_rex(call, **overrides) -> dict:
    result = call("POST", "/admin/dogs", body={**DOG, **overrides}, claims=ADMIN_CLAIMS)
    assert result["statusCode"] == 201
    return response_json(result)


class TestPublicRoutes:
    def test_list_available(self, call):
        create_rex(call)
        create_rex(call, name="Luna", gender="Hembra", status="adopted")

        result = call("GET", "/dogs")

        assert result["statusCode"] == 200
        assert [dog["name"] for dog in response_json(result)] == ["Rex"]

    def test_get_dog_with_gallery(self, call):
        rex = create_rex(call, images=[image("a.jpg"), image("b.png")])

        result = call("GET", f"/dogs/{rex['dog_id']}")

        body = response_json(result)
        assert result["statusCode"] == 200
        assert [img["display_order"] for img in body["images"]] == [0, 1]
        assert body["primary_image_url"] == body["images"][0]["image_url"]
        assert body["gender"] == "Macho"

    def test_get_missing_dog_is_404(self, call):
        result = call("GET", "/dogs/999")

        assert result["statusCode"] == 404
        assert response_json(result)["message"] == "Dog 999 not found"

    def test_non_numeric_dog_id_is_rejected(self, call):
        result = call("GET", "/dogs/luna")

        assert result["statusCode"] == 400
        assert response_json(result)["type"] == "validation_error"


class TestAdminRoutes:
    def test_admin_routes_require_authentication(self, call):
        result = call("POST", "/admin/dogs", body=DOG)

        assert result["statusCode"] == 401

    def test_admin_routes_require_admin_group(self, call):
        result = call("POST", "/admin/dogs", body=DOG, claims=VISITOR_CLAIMS)

        assert result["statusCode"] == 403
        assert response_json(result)["message"] == "Administrator role required"

    def test_create_accepts_comma_separated_personality(self, call):
        rex = create_rex(call, personality="Juguetón, Cariñoso, , Activo")

        assert rex["personality"] == ["Juguetón", "Cariñoso", "Activo"]
        assert rex["status"] == "available"

    def test_create_rejects_unknown_gender(self, call):
        result = call("POST", "/admin/dogs", body={**DOG, "gender": "Otro"}, claims=ADMIN_CLAIMS)

        assert result["statusCode"] == 400
        assert "gender" in response_json(result)["message"]

    def test_create_rejects_blank_name(self, call):
        result = call("POST", "/admin/dogs", body={**DOG, "name": "   "}, claims=ADMIN_CLAIMS)

        assert result["statusCode"] == 400

    def test_adoption_lifecycle(self, call):
        rex = create_rex(call)
        path = f"/admin/dogs/{rex['dog_id']}"

        updated = call("PUT", path, body={"status": "adopted"}, claims=ADMIN_CLAIMS)

        assert updated["statusCode"] == 200
        assert response_json(updated)["status"] == "adopted"
        assert response_json(call("GET", "/dogs")) == []
        assert [dog["dog_id"] for dog in response_json(call("GET", "/admin/dogs", claims=ADMIN_CLAIMS))] == [rex["dog_id"]]
        assert response_json(call("GET", f"/dogs/{rex['dog_id']}"))["status"] == "adopted"

    def test_update_missing_dog_is_404(self, call):
        result = call("PUT", "/admin/dogs/77", body={"name": "Nadie"}, claims=ADMIN_CLAIMS)

        assert result["statusCode"] == 404

    def test_delete_dog(self, call):
        rex = create_rex(call)

        deleted = call("DELETE", f"/admin/dogs/{rex['dog_id']}", claims=ADMIN_CLAIMS)
        again = call("DELETE", f"/admin/dogs/{rex['dog_id']}", claims=ADMIN_CLAIMS)

        assert deleted["statusCode"] == 200
        assert again["statusCode"] == 404

    def test_add_and_remove_images(self, call):
        rex = create_rex(call, images=[image()])
        path = f"/admin/dogs/{rex['dog_id']}/images"

        added = call("POST", path, body={"images": [image("b.jpg"), image("c.webp")]}, claims=ADMIN_CLAIMS)

        assert added["statusCode"] == 201
        new_images = response_json(added)
        assert [img["display_order"] for img in new_images] == [1, 2]

        removed = call("DELETE", f"/admin/images/{new_images[0]['image_id']}", claims=ADMIN_CLAIMS)
        missing = call("DELETE", "/admin/images/4040", claims=ADMIN_CLAIMS)

        assert removed["statusCode"] == 200
        assert missing["statusCode"] == 404
        gallery = response_json(call("GET", f"/dogs/{rex['dog_id']}"))["images"]
        assert [img["display_order"] for img in gallery] == [0, 2]

    def test_add_images_to_missing_dog_is_404(self, call):
        result = call("POST", "/admin/dogs/31/images", body={"images": [image()]}, claims=ADMIN_CLAIMS)

        assert result["statusCode"] == 404

    def test_unsupported_image_extension_is_400(self, call):
        rex = create_rex(call)

        result = call("POST", f"/admin/dogs/{rex['dog_id']}/images", body={"images": [image("rex.bmp")]}, claims=ADMIN_CLAIMS)

        assert result["statusCode"] == 400
        assert "Unsupported image extension: bmp" in response_json(result)["message"]

    def test_stats(self, call):
        create_rex(call)
        create_rex(call, name="Luna", status="adopted")

        result = call("GET", "/admin/stats", claims=ADMIN_CLAIMS)

        body = response_json(result)
        assert result["statusCode"] == 200
        assert (body["total_dogs"], body["available_dogs"], body["adopted_dogs"]) == (2, 1, 1)

    def test_store_failure_is_503_without_details(self, call, fake_s3):
        fake_s3.fail_upload_at = 1

        result = call("POST", "/admin/dogs", body={**DOG, "images": [image()]}, claims=ADMIN_CLAIMS)

        assert result["statusCode"] == 503
        assert "upstream is down" not in result["body"]
        assert response_json(call("GET", "/admin/dogs", claims=ADMIN_CLAIMS)) == []


class TestHealth:
    def test_healthy(self, call):
        result = call("GET", "/health")

        assert result["statusCode"] == 200
        assert response_json(result)["checks"]["database"]["status"] == "healthy"

    def test_unhealthy_database(self, call, fake_db, monkeypatch):
        def broken():
            raise ClientError({"Error": {"Code": "ResourceNotFoundException", "Message": "no table"}}, "DescribeTable")

        monkeypatch.setattr(fake_db, "health_check", broken)

        result = call("GET", "/health")

        assert result["statusCode"] == 503
        assert response_json(result)["checks"]["database"]["status"] == "unhealthy"

    def test_unhealthy_bucket_hides_store_details(self, call, fake_s3, monkeypatch):
        def broken():
            raise ClientError({"Error": {"Code": "NoSuchBucket", "Message": "shelter-images-test does not exist"}},
                              "ListObjectsV2")

        monkeypatch.setattr(fake_s3, "health_check", broken)

        result = call("GET", "/health")

        body = response_json(result)
        assert result["statusCode"] == 503
        assert body["checks"]["s3"] == {"status": "unhealthy", "error": "s3 unreachable"}
        assert body["checks"]["database"]["status"] == "healthy"
        assert "shelter-images-test" not in result["body"]
