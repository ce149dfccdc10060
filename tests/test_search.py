from recipebox import crud, schemas
from recipebox.search import normalize_terms, search_recipes


def add(db, name, ingredients, method="Cook."):
    return crud.create_recipe(
        db, schemas.RecipeCreate(name=name, method=method, ingredients=ingredients)
    )


def names(page):
    return {item.name for item in page.items}


def test_ingredient_terms_are_anded(db):
    add(db, "Pancakes", ["200g flour", "2 eggs", "300ml milk"])
    add(db, "Shortbread", ["180g plain flour", "100g butter"])
    add(db, "Custard", ["500ml milk", "4 egg yolks"])

    assert names(search_recipes(db, ingredient_terms=["flour", "eggs"])) == {"Pancakes"}
    assert names(search_recipes(db, ingredient_terms=["flour"])) == {
        "Pancakes",
        "Shortbread",
    }
    assert names(search_recipes(db, ingredient_terms=["flour", "saffron"])) == set()


def test_terms_match_whole_words_of_canonical_names(db):
    add(db, "Soup", ["1 onion, diced", "2 carrots, sliced", "1l stock"])
    add(db, "Salad", ["1 red onion", "tomatoes"])
    add(db, "Stew", ["2 carrots", "500g beef"])

    assert names(search_recipes(db, ingredient_terms=["onion", "carrot"])) == {"Soup"}
    assert names(search_recipes(db, ingredient_terms=["onions"])) == {"Soup", "Salad"}
    assert names(search_recipes(db, ingredient_terms=["carrots"])) == {"Soup", "Stew"}


def test_soup(db):
    soup = add(db, "Soup", ["2 cups stock", "1 onion, diced"])
    assert crud.get_recipe(db, soup.id).ingredients == ["2 cups stock", "1 onion, diced"]
    assert soup.filterable_ingredient_names == ["stock", "onion"]

    page = search_recipes(db, ingredient_terms=["onion"])
    assert [item.ingredients for item in page.items] == [["2 cups stock", "1 onion, diced"]]
    assert search_recipes(db, ingredient_terms=["onion", "carrot"]).total == 0


def test_free_text_and_terms_combine(db):
    add(db, "Banana Bread", ["3 bananas", "250g flour"], method="Bake in a loaf tin.")
    add(db, "Banana Smoothie", ["2 bananas", "milk"], method="Blend.")
    add(db, "Apple Pie", ["4 apples", "300g flour"], method="Bake.")

    assert names(search_recipes(db, query="banana")) == {"Banana Bread", "Banana Smoothie"}
    assert names(search_recipes(db, query="bake")) == {"Banana Bread", "Apple Pie"}
    assert names(search_recipes(db, query="banana", ingredient_terms=["flour"])) == {
        "Banana Bread"
    }
    # no terms and no text lists everything
    assert search_recipes(db).total == 3


def test_recipe_counted_once_when_several_links_match(db):
    add(db, "Two Onions", ["1 red onion", "2 spring onions"])
    page = search_recipes(db, ingredient_terms=["onion"])
    assert page.total == 1
    assert len(page.items) == 1


def test_pagination(db):
    for i in range(11):
        add(db, f"Recipe {i}", ["salt"])

    page = search_recipes(db, page=2, page_size=5)
    assert page.total == 11
    assert page.total_pages == 3
    assert page.page == 2
    assert len(page.items) == 5

    last = search_recipes(db, page=3, page_size=5)
    assert len(last.items) == 1

    beyond = search_recipes(db, page=9, page_size=5)
    assert beyond.items == []
    assert beyond.total == 11


def test_page_size_is_clamped(db):
    add(db, "Toast", ["bread"])
    page = search_recipes(db, page=0, page_size=10_000)
    assert page.page == 1
    assert page.page_size == 100
    assert search_recipes(db, page_size=0).page_size == 25


def test_most_recently_updated_first(db):
    first = add(db, "First", ["salt"])
    add(db, "Second", ["pepper"])
    assert [i.name for i in search_recipes(db).items] == ["Second", "First"]

    crud.update_recipe(
        db,
        first.id,
        schemas.RecipeCreate(name="First", method="Cook again.", ingredients=["salt"]),
    )
    assert [i.name for i in search_recipes(db).items] == ["First", "Second"]


def test_empty_result(db):
    page = search_recipes(db, query="nothing")
    assert page.total == 0
    assert page.total_pages == 0
    assert page.items == []


def test_normalize_terms_drops_blank_and_duplicates():
    assert normalize_terms(["Eggs", "egg", " ", "tomatoes"]) == ["egg", "tomato"]
