import uuid

import pytest

from app.core.config import settings
from app.core.exceptions import Duplicate, InvalidInput, NotFound
from app.models.product import ProductCategory
from app.repositories.product_repo import ProductRepository
from app.schemas.product import CompanyCreate, CompanyUpdate, ProductCreate, ProductUpdate
from app.services.product_service import ProductService, slugify
from app.services.review_service import ReviewService

API = settings.API_V1_STR


def test_slugify():
    assert slugify("Acme Déploiement  Continu!") == "acme-deploiement-continu"
    assert slugify("---") == ""


def test_generated_slugs_are_unique(db, company):
    service = ProductService(db)
    first = service.create_product(ProductCreate(company_id=company.id, name="Flagship"))
    second = service.create_product(ProductCreate(company_id=company.id, name="Flagship"))
    assert (first.slug, second.slug) == ("flagship", "flagship-1")


# ------------------------------------------------------------------
# Mise à jour
# ------------------------------------------------------------------

def test_update_product_keeps_review_stats(db, product, user):
    ReviewService(db).create_review(product.id, user.id, None, "Bien", 4)

    updated = ProductService(db).update_product(
        product.id, ProductUpdate(name=" Acme Deploy Pro ", short_tagline="Déploiements sans stress")
    )

    assert updated.name == "Acme Deploy Pro"
    assert updated.short_tagline == "Déploiements sans stress"
    assert updated.slug == "acme-deploy"
    assert (updated.avg_rating, updated.total_reviews) == (4.0, 1)


def test_update_product_ignores_explicit_null_for_required_fields(db, product):
    updated = ProductService(db).update_product(product.id, ProductUpdate(name=None, category=None))
    assert updated.name == "Acme Deploy"
    assert updated.category == ProductCategory.OTHER


def test_update_product_slug_rules(db, product, make_product):
    service = ProductService(db)
    other = make_product("Autre produit")

    with pytest.raises(Duplicate):
        service.update_product(product.id, ProductUpdate(slug=other.slug))
    with pytest.raises(InvalidInput):
        service.update_product(product.id, ProductUpdate(slug="Pas Un Slug"))

    # Slug inchangé : pas de conflit avec lui-même
    assert service.update_product(product.id, ProductUpdate(slug="acme-deploy")).slug == "acme-deploy"
    assert service.update_product(product.id, ProductUpdate(slug="acme-ship")).slug == "acme-ship"


def test_update_company(db, company):
    service = ProductService(db)
    other = service.create_company(CompanyCreate(name="Globex"))

    updated = service.update_company(company.id, CompanyUpdate(website="https://acme.example"))
    assert updated.website == "https://acme.example"
    assert updated.name == "Acme Cloud"

    with pytest.raises(Duplicate):
        service.update_company(company.id, CompanyUpdate(slug=other.slug))
    with pytest.raises(NotFound):
        service.update_company(uuid.uuid4(), CompanyUpdate(name="Fantôme"))


# ------------------------------------------------------------------
# Suppression (soft delete)
# ------------------------------------------------------------------

def test_delete_product_hides_it_everywhere(db, product, make_product, user):
    service = ProductService(db)
    kept = make_product("Acme Observe")

    service.delete_product(product.id)

    with pytest.raises(NotFound):
        service.get_product(product.id)
    repo = ProductRepository(db)
    assert repo.get_product_by_slug(product.slug) is None
    assert [p.id for p in repo.get_products()[0]] == [kept.id]
    assert repo.get_all_product_ids() == [kept.id]
    assert service.search_products("acme")[1] == 1
    # Plus d'avis sur un produit supprimé
    with pytest.raises(NotFound):
        ReviewService(db).create_review(product.id, user.id, None, "Trop tard", 3)
    with pytest.raises(NotFound):
        service.delete_product(product.id)


def test_delete_company(db, company):
    service = ProductService(db)
    service.delete_company(company.id)

    with pytest.raises(NotFound):
        service.get_company(company.id)
    with pytest.raises(NotFound):
        service.create_product(ProductCreate(company_id=company.id, name="Orphelin"))


# ------------------------------------------------------------------
# Recherche et catégories
# ------------------------------------------------------------------

def test_search_products_by_name_or_slug(db, company, make_product):
    service = ProductService(db)
    deploy = make_product("Acme Deploy")
    service.create_product(ProductCreate(company_id=company.id, name="Toggle Hub", slug="flags-hub"))

    products, total = service.search_products("DEPLOY")
    assert total == 1 and products[0].id == deploy.id
    assert service.search_products("flags")[1] == 1
    # Les jokers SQL sont littéraux
    assert service.search_products("%")[1] == 0


@pytest.mark.parametrize("query", [None, "", "   ", "x" * 101])
def test_search_rejects_invalid_query(db, query):
    with pytest.raises(InvalidInput):
        ProductService(db).search_products(query)
    with pytest.raises(InvalidInput):
        ProductService(db).search_companies(query)


def test_search_companies(db, company):
    ProductService(db).create_company(CompanyCreate(name="Globex"))
    companies, total = ProductService(db).search_companies("acme")
    assert total == 1 and companies[0].id == company.id


def test_list_products_by_category(db, company, product):
    service = ProductService(db)
    ci = service.create_product(
        ProductCreate(company_id=company.id, name="Pipeline", category=ProductCategory.CI_CD)
    )

    products, total = service.list_products_by_category("ci_cd")
    assert total == 1 and products[0].id == ci.id
    assert service.list_products_by_category("hosting") == ([], 0)
    with pytest.raises(InvalidInput):
        service.list_products_by_category("bogus")


# ------------------------------------------------------------------
# HTTP
# ------------------------------------------------------------------

def test_catalogue_routes(client, company, product, user, admin, auth_headers):
    response = client.put(
        f"{API}/products/{product.id}", json={"description": "CD managé"}, headers=auth_headers(user)
    )
    assert response.status_code == 200
    assert response.json()["data"]["description"] == "CD managé"

    response = client.get(f"{API}/products/search", params={"q": "deploy"})
    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert client.get(f"{API}/products/search").status_code == 400

    response = client.get(f"{API}/products/category/other")
    assert [p["id"] for p in response.json()["data"]] == [str(product.id)]
    assert client.get(f"{API}/products/category/bogus").status_code == 400

    assert client.get(f"{API}/companies/search", params={"q": "acme"}).json()["total"] == 1

    url = f"{API}/products/{product.id}"
    assert client.delete(url, headers=auth_headers(user)).status_code == 403
    assert client.delete(url, headers=auth_headers(admin)).status_code == 200
    assert client.get(url).status_code == 404

    company_url = f"{API}/companies/{company.id}"
    response = client.put(company_url, json={"name": "Acme Corp"}, headers=auth_headers(user))
    assert response.json()["data"]["name"] == "Acme Corp"
    assert client.delete(company_url, headers=auth_headers(admin)).status_code == 200
    assert client.get(company_url).status_code == 404


def test_catalogue_lookups_use_error_envelope(client, product):
    for url in (
        f"{API}/products/{uuid.uuid4()}",
        f"{API}/products/slug/inconnu",
        f"{API}/companies/{uuid.uuid4()}",
        f"{API}/companies/slug/inconnu",
    ):
        response = client.get(url)
        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["error"]["type"] == "not_found"
