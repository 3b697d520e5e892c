# surfacescan/scanner/signatures/tech.py
"""
Technology fingerprints for the informational tech-stack check.

A header match is strong evidence (the platform set it); an HTML match
only means the page references the technology somewhere.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Pattern, Tuple

TECH_CATEGORIES = ("framework", "hosting", "cdn", "cms", "analytics", "other")


@dataclass(frozen=True)
class TechSignature:
    name: str
    category: str
    # (lower-case header name, value pattern)
    headers: Tuple[Tuple[str, Pattern[str]], ...] = ()
    html: Tuple[Pattern[str], ...] = ()


_ANY = re.compile(r".+")


def _tech(name: str, category: str, headers=(), html=()) -> TechSignature:
    return TechSignature(
        name=name,
        category=category,
        headers=tuple((header, pattern if isinstance(pattern, re.Pattern) else re.compile(pattern, re.IGNORECASE))
                      for header, pattern in headers),
        html=tuple(re.compile(p) if isinstance(p, str) else p for p in html),
    )


TECH_SIGNATURES: Tuple[TechSignature, ...] = (
    # Frameworks
    _tech("Next.js", "framework",
          headers=[("x-nextjs-cache", _ANY), ("x-powered-by", r"next\.js")],
          html=[r"_next/static", r"__NEXT_DATA__", r"next/dist"]),
    _tech("Nuxt.js", "framework",
          html=[r"_nuxt/", r"__NUXT__", re.compile(r"nuxt\.js", re.IGNORECASE)]),
    _tech("React", "framework",
          html=[r"react\.production\.min\.js", r"react-dom", r"__REACT_DEVTOOLS", r"data-reactroot", r"data-reactid"]),
    _tech("Vue.js", "framework",
          html=[r"vue\.runtime", r"vue\.min\.js", r"data-v-[a-f0-9]{8}", r"__VUE__"]),
    _tech("Angular", "framework",
          html=[r"ng-version", r"angular\.min\.js", r"ng-app", r"\[\(ngModel\)\]"]),
    _tech("Svelte", "framework",
          html=[re.compile(r"svelte", re.IGNORECASE), r"__svelte"]),
    _tech("Remix", "framework",
          html=[r"__remix", re.compile(r"remix\.run", re.IGNORECASE)]),
    _tech("Astro", "framework",
          html=[r"astro-", r"client:load"]),

    # Hosting
    _tech("Vercel", "hosting",
          headers=[("x-vercel-id", _ANY), ("server", r"vercel")]),
    _tech("Netlify", "hosting",
          headers=[("x-nf-request-id", _ANY), ("server", r"netlify")]),
    _tech("AWS", "hosting",
          headers=[("x-amz-request-id", _ANY), ("x-amzn-requestid", _ANY), ("server", r"AmazonS3|CloudFront")]),
    _tech("Google Cloud", "hosting",
          headers=[("x-cloud-trace-context", _ANY), ("server", r"Google Frontend")]),
    _tech("Heroku", "hosting",
          headers=[("via", r"heroku")]),
    _tech("Railway", "hosting",
          headers=[("x-railway-request-id", _ANY)]),
    _tech("Render", "hosting",
          headers=[("x-render-origin-server", _ANY)]),
    _tech("Fly.io", "hosting",
          headers=[("fly-request-id", _ANY)]),
    _tech("DigitalOcean", "hosting",
          headers=[("x-do-app-origin", _ANY), ("x-do-orig-status", _ANY)]),

    # CDN
    _tech("Cloudflare", "cdn",
          headers=[("cf-ray", _ANY), ("server", r"cloudflare"), ("cf-cache-status", _ANY)]),
    _tech("Fastly", "cdn",
          headers=[("x-served-by", r"cache-"), ("x-fastly-request-id", _ANY)]),
    _tech("Akamai", "cdn",
          headers=[("x-akamai-transformed", _ANY)]),

    # CMS
    _tech("WordPress", "cms",
          html=[r"wp-content", r"wp-includes", re.compile(r"wordpress", re.IGNORECASE)]),
    _tech("Shopify", "cms",
          headers=[("x-shopify-stage", _ANY)],
          html=[r"cdn\.shopify\.com", r"Shopify\.theme"]),
    _tech("Webflow", "cms",
          html=[re.compile(r"webflow", re.IGNORECASE), r"assets\.website-files\.com"]),
    _tech("Wix", "cms",
          html=[r"wix\.com", r"wixstatic\.com"]),
    _tech("Squarespace", "cms",
          html=[re.compile(r"squarespace", re.IGNORECASE), r"sqsp\.net"]),
    _tech("Ghost", "cms",
          headers=[("x-ghost-cache-status", _ANY)],
          html=[r"ghost-", r"content/themes"]),

    # Analytics
    _tech("Google Analytics", "analytics",
          html=[r"google-analytics\.com", r"googletagmanager\.com", r"gtag\("]),
    _tech("Plausible", "analytics", html=[r"plausible\.io"]),
    _tech("Fathom", "analytics", html=[r"usefathom\.com"]),
    _tech("Mixpanel", "analytics", html=[r"mixpanel\.com"]),
    _tech("Amplitude", "analytics", html=[r"amplitude\.com"]),

    # Auth, payments, backend-as-a-service
    _tech("Clerk", "other", html=[r"clerk\.com", r"clerk\.accounts"]),
    _tech("Auth0", "other", html=[r"auth0\.com"]),
    _tech("Supabase", "other", html=[r"supabase\.co", r"supabase\.io"]),
    _tech("Firebase", "other", html=[r"firebaseapp\.com", r"firebase\.google\.com", r"firebaseio\.com"]),
    _tech("Stripe", "other", html=[r"js\.stripe\.com", r"stripe\.com"]),
)
