from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from sitegen.models import PageMode, TemplatePage, WebsiteTemplate

DEFAULT_TEMPLATE_ID = "landing-page"

_BASE_STYLE_SEED = """
:root {
  --primary-color: #34bfc2;
  --secondary-color: #F78D2B;
  --dark-color: #2c3e50;
  --light-color: #ecf0f1;
}
body { font-family: 'IBM Plex Sans', sans-serif; line-height: 1.6; }
h1, h2, h3 { font-family: 'Source Sans Pro', sans-serif; }
""".strip()


def _page(name: str, filename: str, title: str, sections: Sequence[str], required: bool = True) -> TemplatePage:
    return TemplatePage(name=name, filename=filename, title=title, sections=list(sections), required=required)


_TEMPLATES: List[WebsiteTemplate] = [
    WebsiteTemplate(
        id="business-corporate",
        name="Corporate Business",
        description="Professional business website with company information",
        category="business",
        features=["Responsive Design", "Contact Forms", "Team Section", "Services"],
        pages=[
            _page("Home", "index.html", "Home", ["hero", "about-preview", "services-preview", "cta"]),
            _page("About", "about.html", "About Us", ["company-story", "team", "values", "history"]),
            _page("Services", "services.html", "Our Services", ["services-grid", "process", "pricing"]),
            _page("Contact", "contact.html", "Contact Us", ["contact-form", "location", "info"]),
        ],
        shared_styles=_BASE_STYLE_SEED + "\n.header { position: fixed; top: 0; width: 100%; background: white; }",
    ),
    WebsiteTemplate(
        id="ecommerce-store",
        name="E-commerce Store",
        description="Complete online store with product catalog and shopping features",
        category="ecommerce",
        features=["Product Catalog", "Shopping Cart", "User Accounts", "Payment Integration"],
        pages=[
            _page("Home", "index.html", "Home", ["hero-banner", "featured-products", "categories", "testimonials"]),
            _page("Products", "products.html", "Products", ["product-grid", "filters", "pagination"]),
            _page("Product Detail", "product.html", "Product Details", ["product-images", "product-info", "reviews", "related"]),
            _page("Cart", "cart.html", "Shopping Cart", ["cart-items", "summary", "checkout-btn"]),
            _page("About", "about.html", "About Us", ["company-story", "mission"], required=False),
            _page("Contact", "contact.html", "Contact", ["contact-form", "support-info"], required=False),
        ],
        shared_styles=_BASE_STYLE_SEED + "\n.product-card { border-radius: 12px; box-shadow: 0 4px 16px rgba(0,0,0,0.08); }",
    ),
    WebsiteTemplate(
        id="portfolio-creative",
        name="Creative Portfolio",
        description="Showcase your work with a stunning portfolio website",
        category="portfolio",
        features=["Project Gallery", "About Section", "Contact Form", "Responsive Design"],
        pages=[
            _page("Home", "index.html", "Portfolio", ["hero", "featured-work", "about-preview", "contact-cta"]),
            _page("Portfolio", "portfolio.html", "My Work", ["project-grid", "categories-filter"]),
            _page("About", "about.html", "About Me", ["bio", "skills", "experience"]),
            _page("Contact", "contact.html", "Contact", ["contact-form", "social-links"]),
        ],
        shared_styles=_BASE_STYLE_SEED + "\n.project-grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(280px, 1fr)); }",
    ),
    WebsiteTemplate(
        id="blog-magazine",
        name="Blog & Magazine",
        description="Content-focused website for blogs and online magazines",
        category="blog",
        features=["Article Listings", "Categories", "Search", "Author Profiles"],
        pages=[
            _page("Home", "index.html", "Blog", ["featured-posts", "recent-posts", "categories"]),
            _page("Blog", "blog.html", "All Posts", ["post-grid", "sidebar", "pagination"]),
            _page("Post", "post.html", "Blog Post", ["post-content", "author-bio", "related-posts"]),
            _page("About", "about.html", "About", ["author-info", "mission"]),
            _page("Contact", "contact.html", "Contact", ["contact-form"], required=False),
        ],
        shared_styles=_BASE_STYLE_SEED + "\narticle { max-width: 720px; margin: 0 auto; }",
    ),
    WebsiteTemplate(
        id="dashboard-app",
        name="Dashboard Application",
        description="Data-driven dashboard with analytics and management features",
        category="dashboard",
        features=["Data Visualization", "User Management", "Analytics", "Responsive Layout"],
        pages=[
            _page("Dashboard", "index.html", "Dashboard", ["stats-cards", "charts", "recent-activity"]),
            _page("Analytics", "analytics.html", "Analytics", ["performance-metrics", "charts-grid"]),
            _page("Users", "users.html", "User Management", ["user-table", "user-actions"], required=False),
            _page("Settings", "settings.html", "Settings", ["account-settings", "preferences"], required=False),
            _page("Login", "login.html", "Login", ["login-form"]),
        ],
        shared_styles=_BASE_STYLE_SEED + "\n.sidebar { width: 260px; position: fixed; height: 100vh; }",
    ),
    WebsiteTemplate(
        id="landing-page",
        name="Landing Page",
        description="High-converting single page for products or services",
        category="landing",
        features=["Hero Section", "Features", "Testimonials", "Call-to-Action"],
        pages=[
            _page("Landing", "index.html", "Landing Page", ["hero", "features", "testimonials", "pricing", "cta", "footer"]),
        ],
        shared_styles=_BASE_STYLE_SEED + "\n.hero { min-height: 100vh; display: flex; align-items: center; }",
    ),
]

_BY_ID: Dict[str, WebsiteTemplate] = {t.id: t for t in _TEMPLATES}

# Checked in order; the first set with any substring hit wins.
_KEYWORD_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    ("ecommerce-store", ("shop", "store", "ecommerce", "product", "cart", "buy", "sell")),
    ("portfolio-creative", ("portfolio", "showcase", "gallery", "creative", "designer", "artist")),
    ("blog-magazine", ("blog", "article", "news", "magazine", "content", "post")),
    ("dashboard-app", ("dashboard", "admin", "analytics", "management", "data", "chart")),
    ("landing-page", ("landing", "single page", "conversion", "marketing")),
]

_SINGLE_PAGE_CUES = ("single page", "landing", "one page")
_MULTI_PAGE_CUES = ("about", "contact", "service")


def all_templates() -> List[WebsiteTemplate]:
    return list(_TEMPLATES)


def get_template(template_id: str) -> Optional[WebsiteTemplate]:
    return _BY_ID.get(template_id)


def templates_by_category(category: str) -> List[WebsiteTemplate]:
    return [t for t in _TEMPLATES if t.category == category]


def detect_template(prompt: str) -> WebsiteTemplate:
    """Pick a catalog entry from keyword hits in the prompt; landing page when nothing matches."""
    p = (prompt or "").lower()
    for template_id, keywords in _KEYWORD_RULES:
        if any(k in p for k in keywords):
            return _BY_ID[template_id]
    if "about" in p and "contact" in p and ("service" in p or "company" in p):
        return _BY_ID["business-corporate"]
    if "page" in p and "single" not in p:
        return _BY_ID["business-corporate"]
    return _BY_ID[DEFAULT_TEMPLATE_ID]


def is_single_page(prompt: str) -> bool:
    p = (prompt or "").lower()
    if any(cue in p for cue in _SINGLE_PAGE_CUES):
        return True
    return not any(cue in p for cue in _MULTI_PAGE_CUES)


def page_mode_for(prompt: str) -> PageMode:
    return "single-page" if is_single_page(prompt) else "multi-page"
