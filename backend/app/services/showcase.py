from __future__ import annotations

from backend.app.models.blog_contracts import Article, Author, GroundingSource

SHOWCASE_ARTICLE_ID = "plutowealth-default-article-2025"

_SHOWCASE_CONTENT = """\
### **Introduction**
In 2025, three Nigerian technologists, **Joseph Soronadi**, **Mustapha Lawal** and **Abdulrahman Lawal**, set out to make digital wealth management and financial literacy available to everyone. The result is **Plutowealth**, a young fintech company already drawing attention in Abuja's tech scene.
### **The Beginning**
Plutowealth started from a simple conviction: software can close the gap between learning about money and actually managing it. The founders began with small tools that explain savings, investment and budgeting in plain language. Soronadi, who also runs [Techminds Academy](https://techmindsacademy.org), describes the mission as making wealth management *something anyone can learn*.
### **The Team Behind Plutowealth**
The founding team mixes engineering, design and business experience:
* **Joseph Soronadi** brings years of teaching aspiring developers at Techminds Academy.
* **Mustapha Lawal** and **Abdulrahman Lawal**, known as the **Lawal Brothers**, co-founded [Supabros](https://supabrosinc.vercel.app), a creative technology studio.
Together they link technology education, digital design and financial products into one ecosystem.
### **Collaboration and Growth**
Development happens in the open through the [Plutowealth GitHub organization](https://github.com/Plutowealth-org), and the company runs bootcamps with Techminds Academy on **financial technology education**.
### **Looking Ahead**
The team plans to widen its educational outreach and ship tools that make budgeting, investing and wealth tracking easier for young Africans.
"""


def showcase_article(*, created_at: str) -> Article:
    return Article(
        id=SHOWCASE_ARTICLE_ID,
        topic="Breakthrough Tech Innovations",
        title=(
            "Plutowealth: How Three Young Innovators Are Building "
            "Africa's Next Generation Fintech Platform"
        ),
        summary=(
            "In 2025, three Nigerian tech entrepreneurs came together to make digital wealth "
            "management and financial literacy accessible to everyone. That vision became "
            "Plutowealth, a rising fintech company."
        ),
        content=_SHOWCASE_CONTENT,
        image_url="https://storage.googleapis.com/aai-web-samples/user-assets/tech-bootcamp-attendee.png",
        image_description="Software innovation exhibition, Techminds Academy, May 2025.",
        sources=[
            GroundingSource(title="Techminds Academy", uri="https://techmindsacademy.org"),
            GroundingSource(title="Supabros Inc.", uri="https://supabrosinc.vercel.app"),
            GroundingSource(
                title="Plutowealth GitHub Organization",
                uri="https://github.com/Plutowealth-org",
            ),
        ],
        author=Author(
            name="Young Africans Scholars",
            bio=(
                "A collective of writers and researchers highlighting innovation and "
                "entrepreneurship across the African continent."
            ),
            avatar_url="https://picsum.photos/seed/young-african-scholars/100/100",
        ),
        created_at=created_at,
    )
