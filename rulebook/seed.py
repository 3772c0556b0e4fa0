"""
rulebook/seed.py -- Default catalogue for a fresh store.

The catalogue describes the documents a lease-financing file contains, the
fields extracted from each, the variables the rules refer to, and a
starter rules document written in storage format.
"""

from __future__ import annotations

from rulebook.models.base import DocumentField, DocumentType, RulesConfig, Variable

_DOCUMENTS = [
    # (id, name, description, icon)
    ("kbis", "Extrait KBIS", "Document officiel attestant l'existence juridique de l'entreprise", "building-2"),
    ("rib", "RIB", "Relevé d'identité bancaire pour les virements", "landmark"),
    ("piece_identite", "Pièce d'identité", "Document d'identité du représentant légal", "id-card"),
    ("contrat_vedis", "Contrat VEDIS", "Contrat de service avec VEDIS", "file-text"),
    ("contrat_financement", "Contrat de financement", "Accord de financement signé", "file-check"),
    ("accord_financement", "Accord de financement", "Validation finale du financement", "check-circle"),
    ("pouvoir_signature", "Pouvoir de signature", "Délégation de pouvoir pour signature", "pen-tool"),
    ("offre_solde", "Offre de solde", "Proposition de solde du financement", "receipt"),
    ("certificat_docusign", "Certificat DocuSign", "Certificat de signature électronique", "shield-check"),
    ("mandat_sepa", "Mandat SEPA", "Autorisation de prélèvement SEPA", "credit-card"),
    ("formulaire_retractation", "Formulaire de rétractation", "Formulaire de rétractation signé et daté", "file-minus"),
]

# Populated by the company registry lookup, keyed on SIREN or company name.
_EXTERNAL_DOCUMENTS = [
    DocumentType(
        id="pappers",
        name="Pappers",
        description=(
            "Données entreprise récupérées automatiquement via API "
            "(à partir du SIREN ou de la raison sociale)"
        ),
        icon="plug",
        is_external=True,
        depends_on=["siren", "raison_sociale"],
    ),
]

_FIELDS = [
    # (id, document_type_id, name, description, required)
    ("f1", "kbis", "Raison sociale", "Nom officiel de l'entreprise", True),
    ("f2", "kbis", "SIREN", "Numéro d'identification à 9 chiffres", True),
    ("f3", "kbis", "SIRET", "Numéro d'identification de l'établissement", True),
    ("f4", "kbis", "Forme juridique", "Type de société (SAS, SARL, etc.)", True),
    ("f5", "kbis", "Capital social", "Montant du capital de la société", True),
    ("f6", "kbis", "Adresse du siège", "Adresse complète du siège social", True),
    ("f7", "kbis", "Code postal", "Code postal du siège", True),
    ("f8", "kbis", "Ville", "Ville du siège social", True),
    ("f9", "kbis", "Date du document", "Date d'émission du KBIS", True),
    ("f10", "kbis", "Dirigeants", "Liste des dirigeants de l'entreprise", True),
    ("f11", "rib", "IBAN", "Identifiant international du compte", True),
    ("f12", "rib", "BIC", "Code d'identification de la banque", True),
    ("f13", "rib", "Titulaire du compte", "Nom du détenteur du compte", True),
    ("f14", "rib", "Banque", "Nom de l'établissement bancaire", False),
    ("f15", "piece_identite", "Nom", "Nom de famille", True),
    ("f16", "piece_identite", "Prénom", "Prénom(s)", True),
    ("f17", "piece_identite", "Date de naissance", "Date de naissance du titulaire", True),
    ("f18", "piece_identite", "Numéro du document", "Numéro unique d'identification", True),
    ("f19", "piece_identite", "Date d'expiration", "Date de validité du document", True),
    ("f20", "contrat_vedis", "Numéro de contrat", "Référence unique du contrat", True),
    ("f21", "contrat_vedis", "Date de signature", "Date de signature du contrat", True),
    ("f22", "contrat_vedis", "Montant", "Montant total du contrat", True),
    ("f23", "contrat_financement", "Référence financement", "Numéro de référence du financement", True),
    ("f24", "contrat_financement", "Montant financé", "Montant total financé", True),
    ("f25", "contrat_financement", "Durée", "Durée du financement en mois", True),
    ("f26", "contrat_financement", "Taux", "Taux d'intérêt appliqué", False),
    ("f27", "accord_financement", "Date d'accord", "Date de validation de l'accord", True),
    ("f28", "accord_financement", "Signataire", "Nom du signataire de l'accord", True),
    ("f29", "pouvoir_signature", "Mandant", "Personne donnant le pouvoir", True),
    ("f30", "pouvoir_signature", "Mandataire", "Personne recevant le pouvoir", True),
    ("f31", "pouvoir_signature", "Périmètre", "Étendue du pouvoir délégué", False),
    ("f32", "offre_solde", "Montant du solde", "Montant restant à payer", True),
    ("f33", "offre_solde", "Date limite", "Date limite de paiement", True),
    ("f34", "certificat_docusign", "ID certificat", "Identifiant unique du certificat", True),
    ("f35", "certificat_docusign", "Date de signature", "Date et heure de signature", True),
    ("f36", "mandat_sepa", "RUM", "Référence unique du mandat", True),
    ("f37", "mandat_sepa", "Date de signature", "Date de signature du mandat", True),
    ("f38", "mandat_sepa", "Créancier", "Identifiant du créancier", True),
]

_VARIABLES = [
    # (id, name, description, document_ids)
    ("raison_sociale", "Raison sociale", "Nom officiel de l'entreprise", ["kbis", "contrat_vedis", "contrat_financement", "pappers"]),
    ("siren", "SIREN", "Numéro d'identification à 9 chiffres", ["kbis", "contrat_vedis", "pappers"]),
    ("siret", "SIRET", "Numéro d'identification de l'établissement", ["kbis", "pappers"]),
    ("forme_juridique", "Forme juridique", "Type de société (SAS, SARL, etc.)", ["kbis", "pappers"]),
    ("capital_social", "Capital social", "Montant du capital de la société", ["kbis", "pappers"]),
    ("adresse_siege", "Adresse du siège", "Adresse complète du siège social", ["kbis", "contrat_vedis"]),
    ("dirigeants", "Dirigeants", "Liste des dirigeants de l'entreprise", ["kbis", "pappers"]),
    ("etablissements", "Établissements", "Adresses des établissements (siège + secondaires)", ["kbis", "pappers"]),
    ("date_creation", "Date de création", "Date d'immatriculation de l'entreprise", ["kbis", "pappers"]),
    ("iban", "IBAN", "Numéro de compte bancaire international", ["rib", "mandat_sepa"]),
    ("bic", "BIC", "Code d'identification de la banque", ["rib", "mandat_sepa"]),
    ("titulaire", "Titulaire", "Nom du titulaire du compte", ["rib"]),
    ("nom", "Nom", "Nom de famille", ["piece_identite", "pouvoir_signature"]),
    ("prenom", "Prénom", "Prénom(s)", ["piece_identite", "pouvoir_signature"]),
    ("date_naissance", "Date de naissance", "Date de naissance", ["piece_identite"]),
    ("date_expiration", "Date d'expiration", "Date de fin de validité du document", ["piece_identite", "pouvoir_signature"]),
    ("nom_signataire", "Nom du signataire", "Personne qui signe le document", ["contrat_financement"]),
    ("qualite_signataire", "Qualité du signataire", "Fonction du signataire", ["contrat_financement"]),
    ("email_signataire", "Email du signataire", "Email du signataire", ["contrat_financement", "certificat_docusign"]),
    ("telephone_signataire", "Téléphone du signataire", "Téléphone du signataire", ["contrat_financement"]),
    ("date_signature", "Date de signature", "Date de signature du document", ["contrat_financement"]),
    ("societe_cliente", "Société cliente", "Nom de la société cliente", ["contrat_vedis", "contrat_financement"]),
    ("loyer_mensuel", "Loyer mensuel", "Montant du loyer mensuel", ["contrat_vedis"]),
    ("loyer", "Loyer", "Montant du loyer", ["contrat_financement", "accord_financement"]),
    ("periodicite", "Périodicité", "Périodicité du loyer (mensuel, trimestriel)", ["accord_financement"]),
    ("duree", "Durée", "Durée en mois ou trimestres", ["contrat_vedis", "contrat_financement", "accord_financement"]),
    ("adresse_installation", "Adresse d'installation", "Adresse d'installation du matériel", ["contrat_financement"]),
    ("date_document", "Date du document", "Date d'émission du document", ["kbis"]),
    ("date_accord", "Date d'accord", "Date de l'accord de financement", ["accord_financement"]),
    ("validite_accord", "Validité de l'accord", "Durée de validité de l'accord", ["accord_financement"]),
    ("mandant", "Mandant", "Personne donnant le pouvoir", ["pouvoir_signature"]),
    ("mandataire", "Mandataire", "Personne recevant le pouvoir", ["pouvoir_signature"]),
    ("date_pouvoir", "Date du pouvoir", "Date du pouvoir de signature", ["pouvoir_signature"]),
    ("annule_et_remplace", "Annule et remplace", "Référence des contrats remplacés", ["contrat_vedis"]),
    ("contrats_remplaces", "Contrats remplacés", "Liste des numéros de contrats remplacés", ["contrat_vedis"]),
    ("numero_contrat_solde", "Numéro contrat soldé", "Numéro du contrat soldé", ["offre_solde", "accord_financement"]),
    ("date_validite", "Date de validité", "Date de validité de l'offre", ["offre_solde"]),
    ("leaser", "Leaser", "Organisme de financement (GRENKE, SIEMENS, LEASECOM, REALEASE, ACHAT)", ["contrat_financement", "accord_financement"]),
    ("type_client", "Type de client", "Type de client (Entreprise, Affaire personnelle)", ["contrat_vedis", "contrat_financement"]),
    ("acompte_40_ttc", "Acompte 40% TTC", "Montant de l'acompte 40% TTC pour les achats", ["contrat_vedis"]),
    ("designation_materiel", "Désignation matériel", "Description du matériel financé", ["contrat_vedis", "contrat_financement"]),
    ("numero_portable", "Numéro portable", "Numéro de téléphone portable du signataire", ["contrat_financement"]),
    ("nombre_salaries", "Nombre de salariés", "Nombre de salariés de l'entreprise", ["pappers", "contrat_financement"]),
]

DEFAULT_RULES = """\
Tu es un agent de validation de dossiers de financement pour VEDIS, une société d'installation de systèmes de sécurité. Tu dois vérifier la conformité des documents selon les règles suivantes.

# DOCUMENTS OBLIGATOIRES

Toujours obligatoires :
- @[doc:kbis] (sauf si l'email contient "sans KBIS")
- @[doc:piece_identite]
- @[doc:contrat_vedis]

Obligatoires si @[var:leaser] ≠ "ACHAT" :
- @[doc:rib]
- @[doc:contrat_financement]
- @[doc:accord_financement]

Obligatoires si @[var:leaser] = "ACHAT" :
- @[var:acompte_40_ttc]

# RÈGLES PAR LEASER

Si @[var:leaser] = "GRENKE" :
- @[doc:certificat_docusign] est obligatoire.
- Si @[var:email_signataire] est générique, signaler "Confirmation email requise".

Si @[var:leaser] = "SIEMENS" :
- @[doc:piece_identite] de type CNI est obligatoire.
- Si @[doc:offre_solde] existe et est émise par SIEMENS, vérifier que @[var:numero_contrat_solde] figure dans @[doc:accord_financement].

Si @[var:leaser] = "LEASECOM" :
- @[doc:piece_identite] de type CNI est obligatoire.
- Si @[var:nombre_salaries] < 5, @[doc:formulaire_retractation] signé et daté est obligatoire.

Si @[var:leaser] = "REALEASE" :
- @[doc:piece_identite] de type CNI est obligatoire.

# EMAILS GÉNÉRIQUES

Un email est considéré comme générique s'il commence par :
contact@, info@, accueil@, hello@, bonjour@, administration@, admin@, comptabilite@, compta@, direction@, commercial@, support@, secretariat@, bureau@, courrier@, mail@, entreprise@, societe@

Si @[var:email_signataire] est générique et @[var:leaser] = "GRENKE" → avertissement "Email générique - confirmation requise"

# SOURCE DE DONNÉES EXTERNE

Pour récupérer @[doc:pappers] :
1. Si @[doc:kbis] est présent → rechercher par @[var:siren] de @[doc:kbis]
2. Sinon → rechercher par @[var:raison_sociale] de @[doc:contrat_financement]

Si @[doc:pappers] est indisponible ou ne retourne aucun résultat :
- Avertissement "Données Pappers indisponibles - vérification manuelle requise"
- Continuer les autres vérifications sans bloquer

# VALIDITÉ DES DOCUMENTS

@[doc:kbis] :
- Si @[var:date_document] > 3 mois → erreur "KBIS périmé"
- Si @[var:date_document] > 2 mois mais ≤ 3 mois → avertissement "KBIS bientôt périmé"

@[doc:piece_identite] :
- Si @[var:date_expiration] < aujourd'hui → erreur "Pièce d'identité expirée"
- Si @[var:date_expiration] < aujourd'hui + 3 mois → avertissement "Pièce d'identité expire bientôt"

@[doc:accord_financement] :
- Si @[var:date_accord] + @[var:validite_accord] < aujourd'hui → avertissement "Accord de financement expiré"

# VALIDATION DU CONTRAT VEDIS

Vérifier que @[doc:contrat_vedis] :
- Est tamponné (présence d'un cachet d'entreprise)
- Est signé (présence d'une signature manuscrite ou électronique)
- Est daté après les CGV (la date de signature doit être postérieure ou égale à la date des CGV)
- Contient @[var:designation_materiel]

Vérifier que @[var:designation_materiel] de @[doc:contrat_financement] correspond à @[var:designation_materiel] de @[doc:contrat_vedis].

# COMPARAISON DES NOMS DE SOCIÉTÉ

Pour comparer deux noms de société :
1. Mettre en majuscules
2. Supprimer les accents (é→E, è→E, à→A, etc.)
3. Supprimer la forme juridique : SAS, SARL, EURL, SA, SCI, SASU, SELARL, SNC, SCOP, GIE
4. Supprimer la ponctuation et caractères spéciaux
5. Supprimer les espaces multiples
6. Comparer les chaînes résultantes

Exemples :
- "Café des Amis SAS" et "CAFE DES AMIS" → ✅ correspondent
- "SOCIÉTÉ MARTIN & FILS SARL" et "SOCIETE MARTIN ET FILS" → ✅ correspondent
- "ACME CORP" et "BETA INC" → ❌ ne correspondent pas

# CORRESPONDANCE DES NOMS

Tous ces noms doivent correspondre (selon la méthode ci-dessus) :
- @[var:titulaire] de @[doc:rib]
- @[var:societe_cliente] de @[doc:contrat_vedis]
- @[var:societe_cliente] de @[doc:contrat_financement]
- @[var:raison_sociale] de @[doc:pappers]

Si différence → erreur "Nom de société incohérent entre les documents"

# COHÉRENCE FINANCIÈRE

Loyers :
- Récupérer @[var:loyer_mensuel] de @[doc:contrat_vedis]
- Récupérer @[var:loyer] et @[var:periodicite] de @[doc:accord_financement]
- Si @[var:periodicite] = "trimestriel" → comparer @[var:loyer] avec @[var:loyer_mensuel] × 3
- Si @[var:periodicite] = "mensuel" → comparer @[var:loyer] avec @[var:loyer_mensuel]
- Tolérance acceptée : 1€
- Si écart > 1€ → erreur "Écart de loyer entre accord et contrat VEDIS"

- @[var:loyer] de @[doc:contrat_financement] doit être égal à @[var:loyer] de @[doc:accord_financement] (même périodicité, tolérance 1€)
- Si écart > 1€ → erreur "Écart de loyer entre contrat et accord de financement"

Durées :
- Récupérer @[var:duree] de chaque document
- Si exprimé en trimestres → convertir en mois (×3)
- @[var:duree] de @[doc:accord_financement] doit être égale à @[var:duree] de @[doc:contrat_vedis]
- @[var:duree] de @[doc:contrat_financement] doit être égale à @[var:duree] de @[doc:contrat_vedis]
- Si différence → erreur "Écart de durée"

Exemples :
- Accord : 21 trimestres = 63 mois, VEDIS : 63 mois → ✅ correspondent
- Accord : 174€/trimestre, VEDIS : 58€/mois → 58×3 = 174€ → ✅ correspondent

# SIGNATAIRE

Vérifier que @[var:nom] de @[doc:piece_identite] correspond à @[var:nom_signataire] de @[doc:contrat_financement].

Pour comparer les noms de personnes :
1. Mettre en majuscules
2. Supprimer les accents
3. Comparer nom de famille (le prénom peut différer : "Jean DUPONT" et "J. DUPONT" → correspondent)

Si différence → erreur "Pièce d'identité ne correspond pas au signataire"

# POUVOIR DE SIGNATURE

Si @[var:nom_signataire] de @[doc:contrat_financement] n'apparaît PAS dans @[var:dirigeants] de @[doc:pappers] :
- @[doc:pouvoir_signature] est obligatoire
- Si absent → erreur "Pouvoir de signature requis - le signataire n'est pas dirigeant"

Si @[doc:pouvoir_signature] est présent, vérifier :
1. @[var:mandant] figure dans @[var:dirigeants] de @[doc:pappers]
   → sinon erreur "Mandant n'est pas dirigeant de la société"
2. @[var:mandataire] correspond à @[var:nom] de @[doc:piece_identite]
   → sinon erreur "Mandataire ne correspond pas à la pièce d'identité"
3. @[var:date_pouvoir] < @[var:date_signature] de @[doc:contrat_financement]
   → sinon erreur "Pouvoir daté après la signature du contrat"
4. Si @[var:date_expiration] existe et < aujourd'hui
   → erreur "Pouvoir de signature périmé"

# ADRESSE D'INSTALLATION

Si @[var:leaser] ≠ "ACHAT" :
- Récupérer @[var:adresse_installation] de @[doc:contrat_financement]
- Récupérer @[var:etablissements] de @[doc:pappers] (liste des adresses : siège + établissements secondaires)
- Vérifier que @[var:adresse_installation] correspond à l'une des adresses (comparaison souple : même code postal + ville suffit)
- L'établissement doit être en activité (non fermé)
- Si non trouvée → avertissement "Adresse d'installation non référencée sur Pappers"

# EMAIL DU SIGNATAIRE

1. Chercher @[var:email_signataire] dans @[doc:contrat_financement]
2. Si absent → chercher dans @[doc:certificat_docusign]
3. Si toujours absent → erreur "Email du signataire manquant"

Vérification de cohérence :
- Extraire le nom de l'email (partie avant @, sans chiffres ni points)
- Comparer avec @[var:nom_signataire]
- Si aucune ressemblance → avertissement "Email suspect - vérification requise"

Exemples :
- Email : "jean.dupont@entreprise.fr", Signataire : "Jean DUPONT" → ✅ cohérent
- Email : "contact@entreprise.fr", Signataire : "Jean DUPONT" → ⚠️ générique
- Email : "marie.martin@entreprise.fr", Signataire : "Jean DUPONT" → ⚠️ suspect

# TÉLÉPHONE DU SIGNATAIRE

@[var:numero_portable] de @[doc:contrat_financement] est obligatoire.
- Doit être un numéro mobile français (commence par 06 ou 07) ou format international
- Si absent → erreur "Numéro portable manquant"

# RACHAT DE CONTRATS

Si @[var:annule_et_remplace] de @[doc:contrat_vedis] est présent :
1. @[doc:offre_solde] est obligatoire
   → sinon erreur "Offre de solde manquante pour rachat de contrat"
2. @[var:numero_contrat_solde] de @[doc:offre_solde] doit correspondre à un numéro dans @[var:contrats_remplaces] de @[doc:contrat_vedis]
   → sinon erreur "Numéro de contrat soldé ne correspond pas aux contrats à remplacer"
3. Si @[var:date_validite] de @[doc:offre_solde] < aujourd'hui
   → avertissement "Offre de solde expirée"

# INFORMATIONS COMPLÈTES

Vérifier que tous ces champs sont présents et non vides dans @[doc:contrat_financement] :
- @[var:nom_signataire]
- @[var:qualite_signataire] (ex: Gérant, Président, Directeur, etc.)
- @[var:email_signataire]
- @[var:numero_portable]

Si un champ manque → erreur "Informations signataire incomplètes : [nom du champ manquant]"

# PRIORITÉ DES ERREURS

Criticité haute (bloquant immédiat) :
- Document obligatoire manquant
- KBIS périmé
- Pièce d'identité expirée
- Écart de loyer > 1€
- Signataire non autorisé sans pouvoir

Criticité moyenne (bloquant) :
- Nom de société incohérent
- Pouvoir invalide
- Informations signataire incomplètes

Criticité basse (avertissement, non bloquant) :
- KBIS bientôt périmé
- Pièce d'identité expire bientôt
- Accord expiré
- Adresse non référencée
- Email suspect
- Offre de solde expirée

# FORMAT DE SORTIE

Pour chaque vérification, retourner :
- ✅ CONFORME : La vérification est passée
- ⚠️ AVERTISSEMENT : Point d'attention, non bloquant
- ❌ ERREUR : Non conforme, bloquant

Structure du rapport :
DOSSIER : [Nom de la société]
LEASER : [Nom du leaser]
DATE D'ANALYSE : [Date du jour]

DOCUMENTS :
[Document] : ✅/⚠️/❌ [Commentaire si nécessaire]

VÉRIFICATIONS :
[Règle] : ✅/⚠️/❌ [Détail]

RÉSUMÉ :
Erreurs : [nombre]
Avertissements : [nombre]

STATUT FINAL :
✅ VALIDÉ : 0 erreur, 0 avertissement
⚠️ VALIDÉ AVEC ALERTES : 0 erreur, avertissements > 0
❌ INCOMPLET : erreurs > 0
"""


def default_documents() -> list[DocumentType]:
    documents = [
        DocumentType(id=doc_id, name=name, description=description, icon=icon)
        for doc_id, name, description, icon in _DOCUMENTS
    ]
    # External providers are listed just before the withdrawal form.
    documents[-1:-1] = [doc.model_copy(deep=True) for doc in _EXTERNAL_DOCUMENTS]
    return documents


def default_fields() -> list[DocumentField]:
    return [
        DocumentField(
            id=field_id,
            document_type_id=doc_id,
            name=name,
            description=description,
            required=required,
        )
        for field_id, doc_id, name, description, required in _FIELDS
    ]


def default_variables() -> list[Variable]:
    return [
        Variable(id=var_id, name=name, description=description, document_ids=document_ids)
        for var_id, name, description, document_ids in _VARIABLES
    ]


def default_rules() -> RulesConfig:
    return RulesConfig(content=DEFAULT_RULES.strip())
