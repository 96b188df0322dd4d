#!/usr/bin/env python3
"""
Vérification rapide d'un serveur ADA en marche (python manage.py serve).
Usage : python smoke_site.py [http://localhost:5000]
"""

import re
import sys
import time

import requests


def smoke_site(base_url="http://localhost:5000"):
    """Parcourt les pages principales ; renvoie False dès qu'un échec bloque la suite."""

    print("🧪 TEST DU PORTAIL ADA")
    print("=" * 50)
    ok = True

    # 1: Pages publiques
    print("\n1️⃣ Pages publiques...")
    for path in ("/", "/about", "/contact", "/devoirs", "/devoirs/upcoming"):
        try:
            response = requests.get(f"{base_url}{path}", timeout=5)
            if response.status_code == 200:
                print(f"✅ {path} accessible")
            else:
                ok = False
                print(f"❌ {path}: Erreur {response.status_code}")
        except requests.exceptions.RequestException as e:
            print(f"❌ {path} inaccessible: {e}")
            return False

    # 2: API
    print("\n2️⃣ API des devoirs...")
    try:
        response = requests.get(f"{base_url}/api/devoirs", timeout=5)
        if response.status_code == 200:
            data = response.json()
            print(f"✅ API des devoirs: {data.get('count', 0)} devoirs trouvés")
            if data.get("data"):
                first = data["data"][0]["id"]
                detail = requests.get(f"{base_url}/devoirs/{first}", timeout=5)
                print(("✅" if detail.status_code == 200 else "❌") + f" /devoirs/{first}: {detail.status_code}")
        else:
            ok = False
            print(f"❌ API des devoirs: Erreur {response.status_code}")
    except requests.exceptions.RequestException as e:
        ok = False
        print(f"❌ API des devoirs inaccessible: {e}")

    # 3: Page inexistante
    print("\n3️⃣ Page inexistante...")
    response = requests.get(f"{base_url}/nope-{int(time.time())}", timeout=5)
    print(("✅" if response.status_code == 404 else "❌") + f" 404 attendu, reçu {response.status_code}")

    # 4: Formulaire de contact (session + CSRF)
    print("\n4️⃣ Formulaire de contact...")
    with requests.Session() as http:
        page = http.get(f"{base_url}/contact", timeout=5)
        m = re.search(r'name="(_[a-z_]*token)" value="([0-9a-f]+)"', page.text)
        if not m:
            ok = False
            print("❌ Jeton CSRF introuvable dans le formulaire")
        else:
            forged = http.post(f"{base_url}/contact", data={"name": "x"}, timeout=5,
                               allow_redirects=False)
            print(("✅" if forged.status_code == 403 else "❌") + f" POST sans jeton: {forged.status_code}")
            sent = http.post(
                f"{base_url}/contact",
                data={m.group(1): m.group(2), "name": "Ada", "email": "ada@example.com",
                      "message": "Bonjour"},
                timeout=5,
            )
            if "Thank you, Ada" in sent.text:
                print("✅ Message envoyé et confirmé")
            else:
                ok = False
                print(f"❌ Confirmation absente (statut {sent.status_code})")

    print("\n" + "=" * 50)
    print("🎯 TESTS TERMINÉS" if ok else "⚠️ TESTS TERMINÉS AVEC DES ERREURS")
    return ok


if __name__ == "__main__":
    print("⏳ Attendre que le serveur démarre...")
    time.sleep(3)
    sys.exit(0 if smoke_site(*sys.argv[1:2]) else 1)
