import enum


class UserRole(str, enum.Enum):
    """Organizational roles supplied by the identity collaborator"""
    CEO = "ceo"
    GESTOR_PROJETOS = "gestor_projetos"        # Project manager
    GESTOR_ADS = "gestor_ads"                  # Traffic / ads manager
    SUCESSO_CLIENTE = "sucesso_cliente"        # Customer success
    DESIGN = "design"
    EDITOR_VIDEO = "editor_video"
    DEVS = "devs"
    ATRIZES_GRAVACAO = "atrizes_gravacao"      # Recording talent
    PRODUTORA = "produtora"                    # Production house
    GESTOR_CRM = "gestor_crm"
    CONSULTOR_COMERCIAL = "consultor_comercial"
    FINANCEIRO = "financeiro"
    RH = "rh"


# Roles that move cards freely on simple boards
FREE_MOVERS = frozenset({UserRole.CEO, UserRole.GESTOR_PROJETOS})


def is_admin(role: UserRole) -> bool:
    return role in FREE_MOVERS
