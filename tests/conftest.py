"""Shared fixtures: small Hypernote apps used across the test suite."""

import pytest

WALLET_APP = """---
hypernote:
  name: Wallet
  icon: wallet.png
queries:
  wallet:
    kinds: [17375]
    authors: [$user.pubkey]
    limit: 1
actions:
  "@zap":
    kind: 9734
    content: "{{ form.amount }}"
---

## Balance

**Sats:** {{ queries.wallet[0].balance || 0 }}

```input
name: amount
placeholder: Amount in sats
```

```button
text: Zap {{ form.amount || 21 }} sats
action: "@zap"
```
"""

PROFILE_APP = """---
name: Profile
description: Shows who you are
queries:
  profile:
    kinds: [0]
    authors: [$user.pubkey]
---

![avatar]({{ queries.profile.picture || '/img/default.png' }})

# {{ queries.profile.display_name || 'Anonymous' }}

Key: `{{ user.pubkey }}`

> Joined {{ queries.profile.created_at | format_date:date }}

- Follows: {{ queries.profile.follows_count || 0 }}
- Site: [homepage](https://example.com/about)
"""

FEED_APP = """---
hypernote:
  name: Feed
queries:
  feed:
    kinds: [1]
    authors: [$contacts]
    limit: 20
---

# Latest notes

```each.start
from: queries.feed
as: $post
```

```hstack.start
width: 48
```

![pic]({{ post.author_picture }})

**{{ post.author_name || post.pubkey }}** wrote at {{ post.created_at | format_date:time }}

```hstack.end
```

```markdown.viewer
content: "{{ post.content }}"
```

```note
id: "{{ post.id }}"
```

```each.end
```

Updated {{ time.now | format_date }}
"""

LAYOUT_APP = """# Layout demo

```hstack.start
width: 80px
height: 120
```

```vstack.start
```

Left column with *emphasis* and snake_case words.

```vstack.end
```

```vstack start
width: 200
```

Right column.

```js
console.log('hello');
```

```vstack end
```

```hstack.end
```

```markdown-editor
name: draft
```
"""


@pytest.fixture
def wallet_app():
    return WALLET_APP


@pytest.fixture
def profile_app():
    return PROFILE_APP


@pytest.fixture
def feed_app():
    return FEED_APP


@pytest.fixture
def layout_app():
    return LAYOUT_APP


@pytest.fixture(params=["wallet", "profile", "feed", "layout"])
def sample_app(request):
    return {
        "wallet": WALLET_APP,
        "profile": PROFILE_APP,
        "feed": FEED_APP,
        "layout": LAYOUT_APP,
    }[request.param]
